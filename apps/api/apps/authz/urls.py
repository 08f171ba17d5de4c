"""
Authz URLs - User Administration
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views_users import UserAdminViewSet

router = DefaultRouter()
router.register(r'users', UserAdminViewSet, basename='user-admin')

urlpatterns = [
    path('', include(router.urls)),
]
