from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Classroom',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('location', models.CharField(blank=True, default='', max_length=200)),
                ('capacity', models.PositiveIntegerField(blank=True, null=True)),
            ],
            options={
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Holiday',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('date_type', models.CharField(choices=[('specific', 'Specific day'), ('recurring', 'Every year'), ('range', 'Date range')], max_length=20)),
                ('day', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('month', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('year', models.PositiveIntegerField(blank=True, null=True)),
                ('start_date', models.DateField(blank=True, null=True)),
                ('end_date', models.DateField(blank=True, null=True)),
                ('location', models.CharField(blank=True, default='', help_text='Only classrooms at this location are affected (blank = everywhere)', max_length=200)),
            ],
            options={
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='WeekSchedule',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(blank=True, default='', max_length=100)),
                ('weekday', models.IntegerField(choices=[(0, 'Monday'), (1, 'Tuesday'), (2, 'Wednesday'), (3, 'Thursday'), (4, 'Friday'), (5, 'Saturday'), (6, 'Sunday')], help_text='Day of week (0=Monday, 6=Sunday)')),
                ('start_time', models.TimeField()),
                ('end_time', models.TimeField()),
            ],
            options={
                'ordering': ['weekday', 'start_time'],
            },
        ),
        migrations.CreateModel(
            name='Course',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True, default='')),
                ('teacher_id', models.PositiveIntegerField(blank=True, null=True)),
                ('start_date', models.DateField(blank=True, null=True)),
                ('end_date', models.DateField(blank=True, null=True)),
                ('classes_count', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('classroom', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='courses', to='scheduling.classroom')),
                ('schedules', models.ManyToManyField(blank=True, related_name='courses', to='scheduling.weekschedule')),
            ],
            options={
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='CourseClass',
            fields=[
                ('id', models.CharField(max_length=64, primary_key=True, serialize=False)),
                ('date', models.DateField()),
                ('start_time', models.TimeField()),
                ('end_time', models.TimeField()),
                ('teacher_id', models.PositiveIntegerField(blank=True, null=True)),
                ('is_substitution', models.BooleanField(default=False)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('done', 'Done'), ('cancelled', 'Cancelled')], default='pending', max_length=20)),
                ('internal_comment', models.TextField(blank=True, default='')),
                ('public_comment', models.TextField(blank=True, default='')),
                ('attendance_initialized', models.BooleanField(default=False, help_text='Set the first time the class is marked done and default attendance is created')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('course', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='classes', to='scheduling.course')),
            ],
            options={
                'ordering': ['date', 'start_time'],
                'indexes': [
                    models.Index(fields=['course', 'date'], name='course_class_course_date_idx'),
                    models.Index(fields=['date', 'status'], name='course_class_date_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Enrollment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('student_id', models.PositiveIntegerField()),
                ('enrollment_date', models.DateField()),
                ('is_active', models.BooleanField(default=True)),
                ('cancellation_date', models.DateField(blank=True, null=True)),
                ('course', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='enrollments', to='scheduling.course')),
            ],
            options={
                'ordering': ['enrollment_date'],
                'indexes': [
                    models.Index(fields=['course', 'is_active'], name='enrollment_course_active_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AttendanceRecord',
            fields=[
                ('id', models.CharField(max_length=96, primary_key=True, serialize=False)),
                ('student_id', models.PositiveIntegerField()),
                ('attended', models.BooleanField(default=False)),
                ('late', models.CharField(choices=[('no', 'No'), ('5_min', '5 minutes late'), ('10_min', '10 minutes late'), ('15_min', '15 minutes late'), ('20_min', '20 minutes late'), ('25_min', '25 minutes late'), ('30_plus_min', '30 or more minutes late')], default='no', max_length=20)),
                ('absence_justified', models.BooleanField(default=False)),
                ('homework_done', models.BooleanField(default=False)),
                ('comments', models.TextField(blank=True, default='')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('completed', 'Completed'), ('annulled', 'Annulled')], default='pending', max_length=20)),
                ('course_class', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='attendance_records', to='scheduling.courseclass')),
            ],
            options={
                'ordering': ['course_class', 'student_id'],
                'constraints': [
                    models.UniqueConstraint(fields=('course_class', 'student_id'), name='unique_attendance_per_student_class'),
                ],
            },
        ),
    ]
