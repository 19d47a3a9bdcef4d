"""
Serializers for the class calendar API.
"""

from rest_framework import serializers

from .models import AttendanceRecord, Course, CourseClass, WeekSchedule
from .types import CLASS_STATUS_CHOICES


class CourseReadSerializer(serializers.ModelSerializer):
    """Serializer for reading/displaying Course (output)."""

    schedule_ids = serializers.PrimaryKeyRelatedField(
        source='schedules',
        many=True,
        read_only=True
    )

    class Meta:
        model = Course
        fields = [
            'id',
            'name',
            'description',
            'teacher_id',
            'classroom',
            'schedule_ids',
            'start_date',
            'end_date',
            'classes_count',
            'created_at',
            'updated_at',
        ]


class CourseCreateSerializer(serializers.Serializer):
    """Serializer for creating a course with options."""

    name = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    teacher_id = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    classroom_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    schedule_ids = serializers.PrimaryKeyRelatedField(
        queryset=WeekSchedule.objects.all(),
        many=True,
        required=False
    )
    start_date = serializers.DateField(required=False, allow_null=True)
    end_date = serializers.DateField(required=False, allow_null=True)
    generate_classes = serializers.BooleanField(default=True)

    def validate(self, data):
        """Validate creation data."""
        start_date = data.get('start_date')
        end_date = data.get('end_date')

        if start_date and end_date and end_date < start_date:
            raise serializers.ValidationError({
                'end_date': 'End date must not be before start date.'
            })

        return data


class CourseUpdateSerializer(serializers.Serializer):
    """Serializer for updating a course."""

    name = serializers.CharField(max_length=200, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    teacher_id = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    classroom_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    schedule_ids = serializers.PrimaryKeyRelatedField(
        queryset=WeekSchedule.objects.all(),
        many=True,
        required=False
    )
    start_date = serializers.DateField(required=False, allow_null=True)
    end_date = serializers.DateField(required=False, allow_null=True)

    def validate(self, data):
        course = self.context.get('course')
        start_date = data.get('start_date', course.start_date if course else None)
        end_date = data.get('end_date', course.end_date if course else None)

        if start_date and end_date and end_date < start_date:
            raise serializers.ValidationError({
                'end_date': 'End date must not be before start date.'
            })

        return data


class CourseClassReadSerializer(serializers.ModelSerializer):
    """Serializer for reading/displaying CourseClass (output)."""

    start_time = serializers.TimeField(format='%H:%M')
    end_time = serializers.TimeField(format='%H:%M')

    class Meta:
        model = CourseClass
        fields = [
            'id',
            'course',
            'date',
            'start_time',
            'end_time',
            'teacher_id',
            'is_substitution',
            'status',
            'internal_comment',
            'public_comment',
            'attendance_initialized',
            'created_at',
            'updated_at',
        ]


class CourseClassUpdateSerializer(serializers.Serializer):
    """Serializer for updating a class."""

    status = serializers.ChoiceField(choices=CLASS_STATUS_CHOICES, required=False)
    date = serializers.DateField(required=False)
    teacher_id = serializers.IntegerField(min_value=0, required=False)
    is_substitution = serializers.BooleanField(required=False)
    start_time = serializers.TimeField(required=False)
    end_time = serializers.TimeField(required=False)
    internal_comment = serializers.CharField(required=False, allow_blank=True)
    public_comment = serializers.CharField(required=False, allow_blank=True)

    def validate(self, data):
        course_class = self.context.get('course_class')
        start_time = data.get('start_time', course_class.start_time if course_class else None)
        end_time = data.get('end_time', course_class.end_time if course_class else None)

        if start_time and end_time and start_time >= end_time:
            raise serializers.ValidationError({
                'end_time': 'End time must be after start time.'
            })

        return data


class CourseClassCreateSerializer(serializers.Serializer):
    """Serializer for adding a class to a course by hand."""

    date = serializers.DateField()
    start_time = serializers.TimeField()
    end_time = serializers.TimeField()
    teacher_id = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    is_substitution = serializers.BooleanField(default=False)
    internal_comment = serializers.CharField(required=False, allow_blank=True, default='')
    public_comment = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, data):
        if data['start_time'] >= data['end_time']:
            raise serializers.ValidationError({
                'end_time': 'End time must be after start time.'
            })
        return data


class SessionSerializer(serializers.Serializer):
    """Serializer for a generated (not necessarily stored) class session."""

    id = serializers.CharField()
    course_id = serializers.IntegerField()
    date = serializers.DateField()
    start_time = serializers.CharField()
    end_time = serializers.CharField()
    teacher_id = serializers.IntegerField(allow_null=True)
    status = serializers.SerializerMethodField()

    def get_status(self, obj):
        return obj.status.value


class ReconciliationPlanSerializer(serializers.Serializer):
    """Serializer for a reconciliation preview or result."""

    to_delete = SessionSerializer(many=True)
    to_add = SessionSerializer(many=True)
    is_in_sync = serializers.BooleanField()


class AttendanceRecordReadSerializer(serializers.ModelSerializer):

    class Meta:
        model = AttendanceRecord
        fields = [
            'id',
            'course_class',
            'student_id',
            'attended',
            'late',
            'absence_justified',
            'homework_done',
            'comments',
            'status',
        ]


class DateRangeQuerySerializer(serializers.Serializer):
    """Serializer for date range query parameters."""

    start = serializers.DateField(required=True)
    end = serializers.DateField(required=True)
    status = serializers.ChoiceField(
        choices=CLASS_STATUS_CHOICES,
        required=False,
        allow_null=True
    )

    def validate(self, data):
        """Ensure start is not after end."""
        if data['start'] > data['end']:
            raise serializers.ValidationError(
                "Start date must not be after end date."
            )
        return data
