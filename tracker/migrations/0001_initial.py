import django.db.models.deletion
from django.db import migrations, models


def _bucket_fields():
    lows = range(800, 2400, 100)
    fields = [(f'rating_{low}', models.PositiveIntegerField(default=0)) for low in lows]
    fields.append(('rating_2400_plus', models.PositiveIntegerField(default=0)))
    fields.append(('rating_unknown', models.PositiveIntegerField(default=0)))
    return fields


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='CronJobConfig',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, unique=True)),
                ('cron_expression', models.CharField(max_length=100)),
                ('enabled', models.BooleanField(default=True)),
                ('last_run', models.DateTimeField(blank=True, null=True)),
                ('next_run', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Cron Job Config',
                'verbose_name_plural': 'Cron Job Configs',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Student',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('codeforces_handle', models.CharField(blank=True, max_length=100, null=True, unique=True)),
                ('email', models.EmailField(blank=True, max_length=254, null=True, unique=True)),
                ('phone_number', models.CharField(blank=True, max_length=30, null=True, unique=True)),
                ('rating', models.IntegerField(default=0)),
                ('max_rating', models.IntegerField(default=0)),
                ('rank', models.CharField(blank=True, default='', max_length=50)),
                ('max_rank', models.CharField(blank=True, default='', max_length=50)),
                ('title_photo', models.URLField(blank=True, default='', max_length=500)),
                ('last_data_update', models.DateTimeField(blank=True, null=True)),
                ('last_submission_date', models.DateTimeField(blank=True, null=True)),
                ('reminder_email_count', models.PositiveIntegerField(default=0)),
                ('email_reminder_enabled', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Student',
                'verbose_name_plural': 'Students',
                'ordering': ['created_at'],
            },
        ),
        migrations.CreateModel(
            name='Contest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('codeforces_contest_id', models.IntegerField()),
                ('name', models.CharField(blank=True, default='', max_length=300)),
                ('participant_type', models.CharField(default='CONTESTANT', max_length=30)),
                ('rank', models.IntegerField(blank=True, null=True)),
                ('old_rating', models.IntegerField(blank=True, null=True)),
                ('new_rating', models.IntegerField(blank=True, null=True)),
                ('rating_change', models.IntegerField(blank=True, null=True)),
                ('contest_time', models.DateTimeField()),
                ('total_problems', models.PositiveIntegerField(default=0)),
                ('problems_solved', models.PositiveIntegerField(default=0)),
                ('hardest_problem', models.JSONField(blank=True, null=True)),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='contests', to='tracker.student')),
            ],
            options={
                'verbose_name': 'Contest',
                'verbose_name_plural': 'Contests',
                'ordering': ['-contest_time'],
                'indexes': [models.Index(fields=['student', 'contest_time'], name='contest_student_time_idx')],
                'constraints': [models.UniqueConstraint(fields=('student', 'codeforces_contest_id'), name='contest_student_cf_contest_uniq')],
            },
        ),
        migrations.CreateModel(
            name='DailyProblemStats',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField()),
                ('total_solved', models.PositiveIntegerField(default=0)),
                ('max_rating_solved', models.IntegerField(blank=True, null=True)),
                ('avg_rating', models.FloatField(blank=True, null=True)),
                *_bucket_fields(),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='daily_problem_stats', to='tracker.student')),
            ],
            options={
                'verbose_name': 'Daily Problem Stats',
                'verbose_name_plural': 'Daily Problem Stats',
                'ordering': ['date'],
                'constraints': [models.UniqueConstraint(fields=('student', 'date'), name='daily_problem_stats_student_date_uniq')],
            },
        ),
        migrations.CreateModel(
            name='DailySubmissionHeatmap',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField()),
                ('submission_count', models.PositiveIntegerField(default=0)),
                ('accepted_count', models.PositiveIntegerField(default=0)),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='submission_heatmap', to='tracker.student')),
            ],
            options={
                'verbose_name': 'Daily Submission Heatmap',
                'verbose_name_plural': 'Daily Submission Heatmap',
                'ordering': ['date'],
                'constraints': [models.UniqueConstraint(fields=('student', 'date'), name='daily_heatmap_student_date_uniq')],
            },
        ),
        migrations.CreateModel(
            name='EmailLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('REMINDER', 'Inactivity reminder')], default='REMINDER', max_length=20)),
                ('success', models.BooleanField(default=False)),
                ('error_message', models.TextField(blank=True, null=True)),
                ('sent_at', models.DateTimeField(auto_now_add=True)),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='email_logs', to='tracker.student')),
            ],
            options={
                'verbose_name': 'Email Log',
                'verbose_name_plural': 'Email Logs',
                'ordering': ['-sent_at'],
                'indexes': [models.Index(fields=['student', 'kind'], name='emaillog_student_kind_idx')],
            },
        ),
    ]
