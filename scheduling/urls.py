"""
URL routing for the scheduling API.
"""

from django.urls import path
from .views import (
    CourseListCreateView,
    CourseDetailView,
    CourseReconciliationView,
    CourseClassesView,
    CourseClassListView,
    CourseClassDetailView,
    CourseClassAttendanceView,
)

urlpatterns = [
    path('courses/', CourseListCreateView.as_view(), name='course-list-create'),
    path('courses/<int:pk>/', CourseDetailView.as_view(), name='course-detail'),
    path('courses/<int:pk>/reconciliation/', CourseReconciliationView.as_view(), name='course-reconciliation'),
    path('courses/<int:pk>/classes/', CourseClassesView.as_view(), name='course-classes'),
    path('classes/', CourseClassListView.as_view(), name='class-list'),
    path('classes/<str:pk>/', CourseClassDetailView.as_view(), name='class-detail'),
    path('classes/<str:pk>/attendance/', CourseClassAttendanceView.as_view(), name='class-attendance'),
]
