from django import forms
from django.contrib import admin, messages

from .exceptions import InvalidCronExpression, SyncError
from .models import (
    Contest,
    CronJobConfig,
    DailyProblemStats,
    DailySubmissionHeatmap,
    EmailLog,
    Student,
)
from .services.cron import update_cron_config, validate_cron
from .services.sync import sync_student

admin.site.site_header = "CF Tracker Administration"
admin.site.site_title = "CF Tracker Admin"
admin.site.index_title = "Admin panel"


class ReadOnlyDerivedAdmin(admin.ModelAdmin):
    """
    Linhas derivadas são reescritas a cada sync; editar à mão não faz sentido.
    """

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = (
        'name',
        'codeforces_handle',
        'email',
        'rating',
        'max_rating',
        'last_submission_date',
        'last_data_update',
        'reminder_email_count',
        'email_reminder_enabled',
    )
    list_filter = ('email_reminder_enabled',)
    search_fields = ('name', 'email', 'codeforces_handle')
    readonly_fields = (
        'rating',
        'max_rating',
        'rank',
        'max_rank',
        'title_photo',
        'last_data_update',
        'last_submission_date',
        'reminder_email_count',
    )
    actions = ['sync_selected']

    @admin.action(description="Sync selected students with Codeforces")
    def sync_selected(self, request, queryset):
        synced = 0
        for student in queryset:
            try:
                sync_student(student.id)
                synced += 1
            except SyncError as exc:
                self.message_user(request, f"{student}: {exc}", level=messages.WARNING)
        self.message_user(request, f"{synced} student(s) synced.", level=messages.SUCCESS)


@admin.register(Contest)
class ContestAdmin(ReadOnlyDerivedAdmin):
    list_display = (
        'student',
        'codeforces_contest_id',
        'name',
        'rank',
        'rating_change',
        'problems_solved',
        'total_problems',
        'contest_time',
    )
    search_fields = ('student__name', 'student__codeforces_handle', 'name')
    list_filter = ('contest_time',)


@admin.register(DailyProblemStats)
class DailyProblemStatsAdmin(ReadOnlyDerivedAdmin):
    list_display = ('student', 'date', 'total_solved', 'max_rating_solved', 'avg_rating')
    search_fields = ('student__name', 'student__codeforces_handle')
    date_hierarchy = 'date'


@admin.register(DailySubmissionHeatmap)
class DailySubmissionHeatmapAdmin(ReadOnlyDerivedAdmin):
    list_display = ('student', 'date', 'submission_count', 'accepted_count')
    search_fields = ('student__name', 'student__codeforces_handle')
    date_hierarchy = 'date'


class CronJobConfigForm(forms.ModelForm):
    class Meta:
        model = CronJobConfig
        fields = ('cron_expression', 'enabled')

    def clean_cron_expression(self):
        try:
            return validate_cron(self.cleaned_data.get('cron_expression'))
        except InvalidCronExpression as exc:
            raise forms.ValidationError(str(exc)) from exc


@admin.register(CronJobConfig)
class CronJobConfigAdmin(admin.ModelAdmin):
    """
    Jobs são fixos (semeados pelo scheduler): só expressão e enabled mudam.
    """

    form = CronJobConfigForm
    list_display = ('name', 'cron_expression', 'enabled', 'last_run', 'next_run')
    fields = ('name', 'cron_expression', 'enabled', 'last_run', 'next_run')
    readonly_fields = ('name', 'last_run', 'next_run')

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def save_model(self, request, obj, form, change):
        update_cron_config(obj.name, obj.cron_expression, obj.enabled)
        obj.refresh_from_db()


@admin.register(EmailLog)
class EmailLogAdmin(ReadOnlyDerivedAdmin):
    list_display = ('student', 'kind', 'success', 'error_message', 'sent_at')
    list_filter = ('kind', 'success')
    search_fields = ('student__name', 'student__email')
