"""URL configuration for files app."""

from django.urls import path

from server.apps.files import views

app_name = 'files'

urlpatterns = [
    path('', views.file_list, name='list'),
    path('uploads/', views.begin_upload, name='begin_upload'),
    path('uploads/complete/', views.complete_upload, name='complete_upload'),
    path('download-url/', views.download_url, name='download_url'),
    path('<str:file_id>/', views.file_detail, name='detail'),
]
