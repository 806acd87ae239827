from django.db import models


RATING_BUCKET_FIELDS = (
    'rating_800',
    'rating_900',
    'rating_1000',
    'rating_1100',
    'rating_1200',
    'rating_1300',
    'rating_1400',
    'rating_1500',
    'rating_1600',
    'rating_1700',
    'rating_1800',
    'rating_1900',
    'rating_2000',
    'rating_2100',
    'rating_2200',
    'rating_2300',
    'rating_2400_plus',
    'rating_unknown',
)


class Student(models.Model):
    name = models.CharField(max_length=200)
    codeforces_handle = models.CharField(max_length=100, blank=True, null=True, unique=True)
    email = models.EmailField(max_length=254, blank=True, null=True, unique=True)
    phone_number = models.CharField(max_length=30, blank=True, null=True, unique=True)

    # Cache do perfil no Codeforces (atualizado a cada sync)
    rating = models.IntegerField(default=0)
    max_rating = models.IntegerField(default=0)
    rank = models.CharField(max_length=50, blank=True, default='')
    max_rank = models.CharField(max_length=50, blank=True, default='')
    title_photo = models.URLField(max_length=500, blank=True, default='')
    last_data_update = models.DateTimeField(null=True, blank=True)
    last_submission_date = models.DateTimeField(null=True, blank=True)

    # Lembretes de inatividade
    reminder_email_count = models.PositiveIntegerField(default=0)
    email_reminder_enabled = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at']
        verbose_name = "Student"
        verbose_name_plural = "Students"

    def __str__(self):
        if self.codeforces_handle:
            return f"{self.name} ({self.codeforces_handle})"
        return self.name


class Contest(models.Model):
    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='contests')
    codeforces_contest_id = models.IntegerField()
    name = models.CharField(max_length=300, blank=True, default='')
    participant_type = models.CharField(max_length=30, default='CONTESTANT')
    rank = models.IntegerField(null=True, blank=True)
    old_rating = models.IntegerField(null=True, blank=True)
    new_rating = models.IntegerField(null=True, blank=True)
    rating_change = models.IntegerField(null=True, blank=True)
    contest_time = models.DateTimeField()
    total_problems = models.PositiveIntegerField(default=0)
    problems_solved = models.PositiveIntegerField(default=0)
    # {"contest_id": 100, "index": "B", "name": "...", "rating": 1600}
    hardest_problem = models.JSONField(null=True, blank=True)

    class Meta:
        ordering = ['-contest_time']
        constraints = [
            models.UniqueConstraint(
                fields=['student', 'codeforces_contest_id'],
                name='contest_student_cf_contest_uniq',
            ),
        ]
        indexes = [
            models.Index(fields=['student', 'contest_time'], name='contest_student_time_idx'),
        ]
        verbose_name = "Contest"
        verbose_name_plural = "Contests"

    def __str__(self):
        return f"{self.student.name} - {self.codeforces_contest_id} ({self.name})"


class DailyProblemStats(models.Model):
    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='daily_problem_stats')
    date = models.DateField()
    total_solved = models.PositiveIntegerField(default=0)
    max_rating_solved = models.IntegerField(null=True, blank=True)
    avg_rating = models.FloatField(null=True, blank=True)

    rating_800 = models.PositiveIntegerField(default=0)
    rating_900 = models.PositiveIntegerField(default=0)
    rating_1000 = models.PositiveIntegerField(default=0)
    rating_1100 = models.PositiveIntegerField(default=0)
    rating_1200 = models.PositiveIntegerField(default=0)
    rating_1300 = models.PositiveIntegerField(default=0)
    rating_1400 = models.PositiveIntegerField(default=0)
    rating_1500 = models.PositiveIntegerField(default=0)
    rating_1600 = models.PositiveIntegerField(default=0)
    rating_1700 = models.PositiveIntegerField(default=0)
    rating_1800 = models.PositiveIntegerField(default=0)
    rating_1900 = models.PositiveIntegerField(default=0)
    rating_2000 = models.PositiveIntegerField(default=0)
    rating_2100 = models.PositiveIntegerField(default=0)
    rating_2200 = models.PositiveIntegerField(default=0)
    rating_2300 = models.PositiveIntegerField(default=0)
    rating_2400_plus = models.PositiveIntegerField(default=0)
    rating_unknown = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['date']
        constraints = [
            models.UniqueConstraint(
                fields=['student', 'date'],
                name='daily_problem_stats_student_date_uniq',
            ),
        ]
        verbose_name = "Daily Problem Stats"
        verbose_name_plural = "Daily Problem Stats"

    def __str__(self):
        return f"{self.student.name} {self.date}: {self.total_solved} solved"


class DailySubmissionHeatmap(models.Model):
    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='submission_heatmap')
    date = models.DateField()
    submission_count = models.PositiveIntegerField(default=0)
    accepted_count = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['date']
        constraints = [
            models.UniqueConstraint(
                fields=['student', 'date'],
                name='daily_heatmap_student_date_uniq',
            ),
        ]
        verbose_name = "Daily Submission Heatmap"
        verbose_name_plural = "Daily Submission Heatmap"

    def __str__(self):
        return f"{self.student.name} {self.date}: {self.accepted_count}/{self.submission_count}"


class CronJobConfig(models.Model):
    name = models.CharField(max_length=100, unique=True)
    cron_expression = models.CharField(max_length=100)
    enabled = models.BooleanField(default=True)
    last_run = models.DateTimeField(null=True, blank=True)
    next_run = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        verbose_name = "Cron Job Config"
        verbose_name_plural = "Cron Job Configs"

    def __str__(self):
        status = "on" if self.enabled else "off"
        return f"{self.name} [{self.cron_expression}] ({status})"


class EmailLog(models.Model):
    KIND_CHOICES = [
        ('REMINDER', 'Inactivity reminder'),
    ]

    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='email_logs')
    kind = models.CharField(max_length=20, choices=KIND_CHOICES, default='REMINDER')
    success = models.BooleanField(default=False)
    error_message = models.TextField(null=True, blank=True)
    sent_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-sent_at']
        indexes = [
            models.Index(fields=['student', 'kind'], name='emaillog_student_kind_idx'),
        ]
        verbose_name = "Email Log"
        verbose_name_plural = "Email Logs"

    def __str__(self):
        status = "ok" if self.success else "failed"
        return f"{self.student.name} - {self.kind} ({status})"
