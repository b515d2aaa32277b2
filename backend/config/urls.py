"""
URL configuration for the Sphere backend.

Every app mounts its routes under the shared ``api/v1/`` prefix; the Django
admin stays available for support staff.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Sphere Administration"
admin.site.site_title = "Sphere Admin Portal"
admin.site.index_title = "Tenants, users and workspace data"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backend.core.urls')),
    path('api/v1/', include('backend.clients.urls')),
    path('api/v1/', include('backend.tasks.urls')),
    path('api/v1/', include('backend.timetracking.urls')),
    path('api/v1/', include('backend.chat.urls')),
    path('api/v1/', include('backend.wiki.urls')),
    path('api/v1/', include('backend.reports.urls')),
]
