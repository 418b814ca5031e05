import graphene

from habits.schema import Mutation, Query

schema = graphene.Schema(query=Query, mutation=Mutation)
