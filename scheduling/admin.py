"""
Admin configuration for the scheduling app.
"""

from django.contrib import admin
from .models import (
    AttendanceRecord,
    Classroom,
    Course,
    CourseClass,
    Enrollment,
    Holiday,
    WeekSchedule,
)


@admin.register(WeekSchedule)
class WeekScheduleAdmin(admin.ModelAdmin):
    list_display = ['__str__', 'weekday_name', 'start_time', 'end_time']
    list_filter = ['weekday']


@admin.register(Holiday)
class HolidayAdmin(admin.ModelAdmin):
    """Admin interface for Holiday model."""

    list_display = ['name', 'date_type', 'day', 'month', 'year', 'start_date', 'end_date', 'location']
    list_filter = ['date_type', 'location']
    search_fields = ['name']

    fieldsets = (
        ('Basic Information', {
            'fields': ('name', 'date_type', 'location')
        }),
        ('Specific / Every Year', {
            'fields': ('day', 'month', 'year')
        }),
        ('Date Range', {
            'fields': ('start_date', 'end_date')
        }),
    )


@admin.register(Classroom)
class ClassroomAdmin(admin.ModelAdmin):
    list_display = ['name', 'location', 'capacity']
    search_fields = ['name', 'location']


@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    """Admin interface for Course model."""

    list_display = ['name', 'teacher_id', 'classroom', 'start_date', 'end_date', 'classes_count']
    list_filter = ['classroom', 'created_at']
    search_fields = ['name', 'description']
    date_hierarchy = 'start_date'
    filter_horizontal = ['schedules']

    fieldsets = (
        ('Basic Information', {
            'fields': ('name', 'description', 'teacher_id', 'classroom')
        }),
        ('Calendar', {
            'fields': ('schedules', 'start_date', 'end_date', 'classes_count')
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    readonly_fields = ['classes_count', 'created_at', 'updated_at']


@admin.register(Enrollment)
class EnrollmentAdmin(admin.ModelAdmin):
    list_display = ['student_id', 'course', 'enrollment_date', 'is_active', 'cancellation_date']
    list_filter = ['is_active', 'course']


@admin.register(CourseClass)
class CourseClassAdmin(admin.ModelAdmin):
    """Admin interface for CourseClass model."""

    list_display = ['id', 'course', 'date', 'start_time', 'status', 'is_substitution', 'attendance_initialized']
    list_filter = ['status', 'is_substitution', 'course']
    date_hierarchy = 'date'

    fieldsets = (
        ('Basic Information', {
            'fields': ('id', 'course', 'teacher_id', 'is_substitution')
        }),
        ('Schedule', {
            'fields': ('date', 'start_time', 'end_time')
        }),
        ('Status', {
            'fields': ('status', 'attendance_initialized')
        }),
        ('Comments', {
            'fields': ('internal_comment', 'public_comment')
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    readonly_fields = ['created_at', 'updated_at']


@admin.register(AttendanceRecord)
class AttendanceRecordAdmin(admin.ModelAdmin):
    list_display = ['id', 'student_id', 'course_class', 'attended', 'late', 'status']
    list_filter = ['status', 'attended', 'late']
