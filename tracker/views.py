import json

from django.contrib.auth.decorators import login_required
from django.db import DatabaseError
from django.http import HttpResponseForbidden, JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_POST

from .exceptions import InvalidCronExpression, StudentNotFound, SyncError, SyncInProgress, UnknownJob
from .models import Student
from .services.analytics import contest_history, problem_stats
from .services.cron import disable_cron_job, enable_cron_job, get_cron_configs, update_cron_config
from .services.sync import sync_student
from .tasks import trigger_cron_job_task


def _forbidden_unless_staff(request):
    if not request.user.is_staff:
        return HttpResponseForbidden("Acesso restrito.")
    return None


def _request_data(request) -> dict:
    if request.content_type == "application/json":
        try:
            return json.loads(request.body or b"{}")
        except ValueError:
            return {}
    return request.POST.dict()


def _parse_bool(value, default=True) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _parse_days(request, default):
    raw = (request.GET.get("days") or "").strip()
    if not raw:
        return default
    if not raw.isdigit():
        return None
    return int(raw)


def _config_payload(config) -> dict:
    return {
        "name": config.name,
        "cron_expression": config.cron_expression,
        "enabled": config.enabled,
        "last_run": config.last_run.isoformat() if config.last_run else None,
        "next_run": config.next_run.isoformat() if config.next_run else None,
    }


@login_required
@require_GET
def cron_configs(request):
    forbidden = _forbidden_unless_staff(request)
    if forbidden:
        return forbidden
    data = [_config_payload(config) for config in get_cron_configs()]
    return JsonResponse({"success": True, "data": data})


@login_required
@require_POST
def cron_config_update(request, job_name):
    forbidden = _forbidden_unless_staff(request)
    if forbidden:
        return forbidden

    data = _request_data(request)
    expression = (data.get("cron_expression") or "").strip()
    if not expression:
        return JsonResponse({"success": False, "error": "Cron expression is required"}, status=400)

    try:
        config = update_cron_config(job_name, expression, _parse_bool(data.get("enabled")))
    except InvalidCronExpression as exc:
        return JsonResponse({"success": False, "error": str(exc)}, status=400)
    except UnknownJob as exc:
        return JsonResponse({"success": False, "error": str(exc)}, status=404)

    return JsonResponse({
        "success": True,
        "message": f"Cron job {job_name} updated successfully",
        "data": _config_payload(config),
    })


@login_required
@require_POST
def cron_job_enable(request, job_name):
    forbidden = _forbidden_unless_staff(request)
    if forbidden:
        return forbidden
    try:
        config = enable_cron_job(job_name)
    except UnknownJob as exc:
        return JsonResponse({"success": False, "error": str(exc)}, status=404)
    return JsonResponse({
        "success": True,
        "message": f"Cron job {job_name} enabled successfully",
        "data": _config_payload(config),
    })


@login_required
@require_POST
def cron_job_disable(request, job_name):
    forbidden = _forbidden_unless_staff(request)
    if forbidden:
        return forbidden
    try:
        config = disable_cron_job(job_name)
    except UnknownJob as exc:
        return JsonResponse({"success": False, "error": str(exc)}, status=404)
    return JsonResponse({
        "success": True,
        "message": f"Cron job {job_name} disabled successfully",
        "data": _config_payload(config),
    })


@login_required
@require_POST
def cron_job_trigger(request, job_name):
    forbidden = _forbidden_unless_staff(request)
    if forbidden:
        return forbidden
    if not get_cron_configs().filter(name=job_name).exists():
        return JsonResponse({"success": False, "error": f"Cron job {job_name} not found"}, status=404)

    result = trigger_cron_job_task.delay(job_name)
    return JsonResponse({
        "success": True,
        "message": f"Cron job {job_name} triggered successfully",
        "task_id": result.id,
    }, status=202)


@login_required
@require_POST
def student_sync(request, student_id):
    forbidden = _forbidden_unless_staff(request)
    if forbidden:
        return forbidden

    try:
        student = sync_student(student_id)
    except StudentNotFound as exc:
        return JsonResponse({"success": False, "error": str(exc)}, status=404)
    except SyncInProgress as exc:
        return JsonResponse({"success": False, "error": str(exc)}, status=409)
    except (SyncError, DatabaseError) as exc:
        return JsonResponse({"success": False, "error": f"Failed to sync student data: {exc}"}, status=400)

    return JsonResponse({
        "success": True,
        "message": "Student data synced successfully",
        "data": {
            "id": student.id,
            "rating": student.rating,
            "max_rating": student.max_rating,
            "rank": student.rank,
            "max_rank": student.max_rank,
            "last_data_update": student.last_data_update.isoformat() if student.last_data_update else None,
            "last_submission_date": (
                student.last_submission_date.isoformat() if student.last_submission_date else None
            ),
        },
    })


@login_required
@require_GET
def student_contest_history(request, student_id):
    forbidden = _forbidden_unless_staff(request)
    if forbidden:
        return forbidden
    student = get_object_or_404(Student, id=student_id)
    days = _parse_days(request, default=365)
    if days is None:
        return JsonResponse({"success": False, "error": "days must be a positive integer"}, status=400)
    return JsonResponse({"success": True, "data": contest_history(student, days)})


@login_required
@require_GET
def student_problem_stats(request, student_id):
    forbidden = _forbidden_unless_staff(request)
    if forbidden:
        return forbidden
    student = get_object_or_404(Student, id=student_id)
    days = _parse_days(request, default=90)
    if days is None:
        return JsonResponse({"success": False, "error": "days must be a positive integer"}, status=400)
    return JsonResponse({"success": True, "data": problem_stats(student, days)})
