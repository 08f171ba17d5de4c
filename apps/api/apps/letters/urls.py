"""Letter request URLs."""
from django.urls import include, path
from rest_framework.routers import SimpleRouter
from .views import LetterViewSet

# Mounted under api/v1/ next to the user admin router, which owns the API root
router = SimpleRouter()
router.register(r'letters', LetterViewSet, basename='letter')

urlpatterns = [
    path('', include(router.urls)),
]
