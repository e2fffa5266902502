"""
URL configuration for backend project.
"""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("", include("organizations.urls")),
    path("", include("reviews.urls")),
    path('admin/', admin.site.urls),
]
