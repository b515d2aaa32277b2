from django.urls import path
from .views import page_list_create, page_tree, page_detail, page_versions, page_version_restore, page_search

urlpatterns = [
    path('wiki/pages/', page_list_create, name='wiki-page-list-create'),
    path('wiki/tree/', page_tree, name='wiki-tree'),
    path('wiki/search/', page_search, name='wiki-search'),
    path('wiki/pages/<str:slug>/', page_detail, name='wiki-page-detail'),
    path('wiki/pages/<str:slug>/versions/', page_versions, name='wiki-page-versions'),
    path('wiki/pages/<str:slug>/versions/<int:version>/restore/', page_version_restore, name='wiki-page-restore'),
]
