from django.urls import path
from . import views

urlpatterns = [
    path('cron/', views.cron_configs, name='cron_configs'),
    path('cron/<str:job_name>/', views.cron_config_update, name='cron_config_update'),
    path('cron/<str:job_name>/enable/', views.cron_job_enable, name='cron_job_enable'),
    path('cron/<str:job_name>/disable/', views.cron_job_disable, name='cron_job_disable'),
    path('cron/<str:job_name>/trigger/', views.cron_job_trigger, name='cron_job_trigger'),
    path('students/<int:student_id>/sync/', views.student_sync, name='student_sync'),
    path('students/<int:student_id>/contests/', views.student_contest_history, name='student_contest_history'),
    path('students/<int:student_id>/problem-stats/', views.student_problem_stats, name='student_problem_stats'),
]
