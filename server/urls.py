"""Main URL mapping configuration file.

Include other URLConfs from external apps using method `include()`.

It is also a good practice to keep a single URL to the root index page.

Examples:
    Function views
        1. Add an import:  from my_app import views
        2. Add a URL to urlpatterns:  path('', views.home, name='home')
"""

from django.contrib import admin
from django.urls import include, path

from server.apps.files import urls as files_urls

urlpatterns = [
    # Apps:
    path('api/files/', include(files_urls, namespace='files')),

    # django-admin:
    path('admin/', admin.site.urls),
]
