"""Views for the class calendar API."""

from django.shortcuts import get_object_or_404

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import AttendanceRecord, Course, CourseClass
from .serializers import (
    AttendanceRecordReadSerializer,
    CourseClassCreateSerializer,
    CourseClassReadSerializer,
    CourseClassUpdateSerializer,
    CourseCreateSerializer,
    CourseReadSerializer,
    CourseUpdateSerializer,
    DateRangeQuerySerializer,
    ReconciliationPlanSerializer,
)
from . import services
from .types import CLEARABLE_COURSE_FIELDS, CourseClassUpdateData, CourseUpdateData


class CourseListCreateView(APIView):
    """
    List all courses or create a new one.

    GET /api/courses/ - List all courses
    POST /api/courses/ - Create a course and optionally generate its classes
    """

    def get(self, request):
        """List all courses."""
        courses = Course.objects.prefetch_related('schedules')
        serializer = CourseReadSerializer(courses, many=True)
        return Response(serializer.data)

    def post(self, request):
        """Create a new course with optional class generation."""
        serializer = CourseCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        course, classes_created = services.create_course(
            name=data['name'],
            description=data.get('description', ''),
            start_date=data.get('start_date'),
            end_date=data.get('end_date'),
            schedule_ids=[s.pk for s in data.get('schedule_ids', [])],
            classroom_id=data.get('classroom_id'),
            teacher_id=data.get('teacher_id'),
            generate_classes=data.get('generate_classes', True)
        )

        response_serializer = CourseReadSerializer(course)
        return Response({
            'course': response_serializer.data,
            'classes_created': classes_created
        }, status=status.HTTP_201_CREATED)


class CourseDetailView(APIView):
    """
    Retrieve, update, or delete a course.

    GET /api/courses/{id}/ - Retrieve course
    PATCH /api/courses/{id}/ - Update course (stored classes are not touched)
    DELETE /api/courses/{id}/ - Delete course and its classes
    """

    def get(self, request, pk):
        course = get_object_or_404(Course, pk=pk)
        serializer = CourseReadSerializer(course)
        return Response(serializer.data)

    def patch(self, request, pk):
        """Update a course."""
        course = get_object_or_404(Course, pk=pk)
        serializer = CourseUpdateSerializer(data=request.data, context={'course': course})
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        schedules = data.get('schedule_ids')
        update_data = CourseUpdateData(
            name=data.get('name'),
            description=data.get('description'),
            teacher_id=data.get('teacher_id'),
            classroom_id=data.get('classroom_id'),
            start_date=data.get('start_date'),
            end_date=data.get('end_date'),
            schedule_ids=[s.pk for s in schedules] if schedules is not None else None,
            cleared_fields=tuple(
                name for name in CLEARABLE_COURSE_FIELDS
                if name in data and data[name] is None
            )
        )
        updated_course = services.update_course(course, update_data)

        response_serializer = CourseReadSerializer(updated_course)
        return Response(response_serializer.data)

    def delete(self, request, pk):
        course = get_object_or_404(Course, pk=pk)
        name = course.name
        course.delete()

        return Response({
            'message': f'Course "{name}" has been deleted.'
        }, status=status.HTTP_200_OK)


class CourseReconciliationView(APIView):
    """
    Preview or apply an update of a course's class calendar.

    GET /api/courses/{id}/reconciliation/ - Classes that would be deleted/added
    POST /api/courses/{id}/reconciliation/ - Delete/add them
    """

    def get(self, request, pk):
        course = get_object_or_404(Course, pk=pk)
        plan = services.preview_course_reconciliation(course)
        return Response(ReconciliationPlanSerializer(plan).data)

    def post(self, request, pk):
        course = get_object_or_404(Course, pk=pk)
        plan = services.apply_course_reconciliation(course)

        data = ReconciliationPlanSerializer(plan).data
        data['classes_count'] = course.classes_count
        return Response(data, status=status.HTTP_200_OK)


class CourseClassesView(APIView):
    """
    List the stored classes of a course or add one by hand.

    GET /api/courses/{id}/classes/ - List the course's classes
    POST /api/courses/{id}/classes/ - Add a one-off class
    """

    def get(self, request, pk):
        course = get_object_or_404(Course, pk=pk)
        classes = CourseClass.objects.for_course(course)
        serializer = CourseClassReadSerializer(classes, many=True)
        return Response(serializer.data)

    def post(self, request, pk):
        course = get_object_or_404(Course, pk=pk)
        serializer = CourseClassCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        course_class = services.create_course_class(
            course,
            class_date=data['date'],
            start_time=data['start_time'],
            end_time=data['end_time'],
            teacher_id=data.get('teacher_id'),
            is_substitution=data['is_substitution'],
            internal_comment=data['internal_comment'],
            public_comment=data['public_comment']
        )

        response_serializer = CourseClassReadSerializer(course_class)
        return Response(response_serializer.data, status=status.HTTP_201_CREATED)


class CourseClassListView(APIView):
    """
    List classes within a date range.

    GET /api/classes/?start=X&end=Y[&status=Z]
    """

    def get(self, request):
        query_serializer = DateRangeQuerySerializer(data=request.query_params)
        query_serializer.is_valid(raise_exception=True)

        classes = services.get_course_classes_in_range(
            query_serializer.validated_data['start'],
            query_serializer.validated_data['end'],
            query_serializer.validated_data.get('status')
        )

        serializer = CourseClassReadSerializer(classes, many=True)
        return Response(serializer.data)


class CourseClassDetailView(APIView):
    """
    Retrieve, update, or delete a class.

    GET /api/classes/{id}/ - Retrieve class
    PATCH /api/classes/{id}/ - Update or reschedule class; a status change updates attendance
    DELETE /api/classes/{id}/ - Delete class and its attendance
    """

    def get(self, request, pk):
        course_class = get_object_or_404(CourseClass, pk=pk)
        serializer = CourseClassReadSerializer(course_class)
        return Response(serializer.data)

    def patch(self, request, pk):
        course_class = get_object_or_404(CourseClass, pk=pk)
        serializer = CourseClassUpdateSerializer(
            data=request.data,
            context={'course_class': course_class}
        )
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        update_data = CourseClassUpdateData(
            status=data.get('status'),
            date=data.get('date'),
            teacher_id=data.get('teacher_id'),
            is_substitution=data.get('is_substitution'),
            start_time=data.get('start_time'),
            end_time=data.get('end_time'),
            internal_comment=data.get('internal_comment'),
            public_comment=data.get('public_comment')
        )
        updated_class = services.update_course_class(course_class, update_data)

        response_serializer = CourseClassReadSerializer(updated_class)
        return Response(response_serializer.data)

    def delete(self, request, pk):
        course_class = get_object_or_404(CourseClass, pk=pk)
        services.delete_course_classes([course_class.pk])

        return Response({
            'message': f'Class "{course_class.pk}" has been deleted.'
        }, status=status.HTTP_200_OK)


class CourseClassAttendanceView(APIView):
    """
    List attendance rows of a class.

    GET /api/classes/{id}/attendance/
    """

    def get(self, request, pk):
        course_class = get_object_or_404(CourseClass, pk=pk)
        records = AttendanceRecord.objects.for_class(course_class)
        serializer = AttendanceRecordReadSerializer(records, many=True)
        return Response(serializer.data)
