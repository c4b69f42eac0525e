"""
URL mappings for the user API.
"""

from django.urls import path

from users import views

app_name = "users"

urlpatterns = [
    path("me/", views.ManageUserView.as_view(), name="me"),
]
