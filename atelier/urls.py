from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('api/', include('api.urls')),
    path('api-auth/', include('rest_framework.urls')),

    # /metrics (django-prometheus)
    path('', include('django_prometheus.urls')),

    path('admin/', admin.site.urls),
]
