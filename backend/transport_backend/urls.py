from django.contrib import admin
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from users.views import UserDetailView
from transport.views import RouteViewSet

router = DefaultRouter()
router.register(r'routes', RouteViewSet, basename='route')

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include(router.urls)),
    path('api/v1/auth/me/', UserDetailView.as_view(), name='user-detail'),
]
