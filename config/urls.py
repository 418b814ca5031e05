"""
URL configuration for the habit tracker backend.

GraphQL lives at /graphql/, the JSON endpoints under /api/.
"""
from django.contrib import admin
from django.urls import path
from django.views.decorators.csrf import csrf_exempt
from graphene_django.views import GraphQLView

from habits import views

urlpatterns = [
    path('admin/', admin.site.urls),
    path('graphql/', csrf_exempt(GraphQLView.as_view(graphiql=True))),
    path("api/habits/logs-by-date", views.logs_by_date, name="habit-logs-by-date"),
    path("api/habits/history", views.month_history, name="habit-history"),
    path("api/habits/presets", views.habit_presets, name="habit-presets"),
    path("api/habits/presets/<str:category>", views.habit_presets, name="habit-presets-by-category"),
    path("api/habits/<int:habit_id>/increment", views.increment_habit, name="habit-increment"),
    path("api/habits/<int:habit_id>/progress", views.habit_progress, name="habit-progress"),
    path("api/goals", views.goal_list, name="goal-list"),
    path("api/goals/<int:goal_id>", views.goal_detail, name="goal-detail"),
]
