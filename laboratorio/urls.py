from django.contrib import admin
from django.urls import path, include
from rest_framework.authtoken.views import obtain_auth_token

urlpatterns = [
    path("admin/", admin.site.urls),

    # Auth (la gestión de usuarios vive fuera de este servicio)
    path("api/auth/token/", obtain_auth_token, name="api-token"),

    path("api/", include("inventario.urls")),
]
