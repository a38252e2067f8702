from __future__ import annotations

import os
import secrets
from datetime import datetime
from typing import Any

from fastapi import Body, Depends, FastAPI, HTTPException, status
from fastapi.responses import PlainTextResponse, Response
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from core import (
    CapacityExceeded,
    Mood,
    NotFound,
    Planner,
    Priority,
    ReminderOffset,
    SettingsPermission,
    Settings,
    Task,
    configure_logging,
    save_settings,
    tomorrow,
)
from core.dates import parse_day
from core.errors import PersistenceFailure

configure_logging()

app = FastAPI(title="ZenPlaner API", version="0.1.0")


# ── Auth ──────────────────────────────────────────────────────

security = HTTPBasic(auto_error=False)


def get_current_user(credentials: HTTPBasicCredentials | None = Depends(security)) -> str:
    expected_username = os.environ.get("ZENPLANER_USERNAME", "")
    expected_password = os.environ.get("ZENPLANER_PASSWORD", "")

    if not expected_username or not expected_password:
        return "guest"

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Basic"},
        )

    correct_username = secrets.compare_digest(credentials.username.encode("utf-8"), expected_username.encode("utf-8"))
    correct_password = secrets.compare_digest(credentials.password.encode("utf-8"), expected_password.encode("utf-8"))

    if not (correct_username and correct_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

    return credentials.username


def get_planner() -> Planner:
    """One planner per request over the workspace in PLANNER_ROOT."""
    return Planner.open()


# ── Request helpers ───────────────────────────────────────────

def _day(planner: Planner, value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return parse_day(value, planner.settings.tz)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date: {value}")


def _deadline(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid deadline: {value}")


def _priority(value: Any, default: Priority = Priority.MEDIUM) -> Priority:
    if value is None:
        return default
    try:
        return Priority(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid priority: {value}")


def _offset(planner: Planner, value: Any) -> ReminderOffset | None:
    """A reminder offset is only accepted when notifications are allowed."""
    if not value:
        return None
    try:
        offset = ReminderOffset(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid reminder offset: {value}")
    if not SettingsPermission(planner.settings).request_notification_permission():
        return None
    return offset


def _text(payload: dict[str, Any], default: str | None = None) -> str:
    text = str(payload.get("text", default or "")).strip()
    if not text:
        raise HTTPException(status_code=400, detail="Missing text")
    return text


def _task(planner: Planner, task_id: str) -> Task:
    try:
        return planner.tasks.get(task_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


def _day_payload(planner: Planner, day: datetime | None) -> dict[str, Any]:
    tasks = planner.tasks.list_for_day(day)
    day = day or planner.now()
    return {
        "day": day.date().isoformat(),
        "tasks": [t.to_dict() for t in tasks],
        "completed": sum(1 for t in tasks if t.is_completed),
        "total": len(tasks),
        "canAdd": planner.tasks.can_add(day),
    }


# ── Health ────────────────────────────────────────────────────

@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"ok": "true"}


# ── Settings ──────────────────────────────────────────────────

@app.get("/api/settings")
def api_get_settings(
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    return planner.settings.to_dict()


@app.put("/api/settings")
def api_update_settings(
    payload: dict[str, Any] = Body(...),
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    """Merge and save preferences; invalid values fall back to defaults."""
    settings = Settings.from_dict({**planner.settings.to_dict(), **payload})
    try:
        save_settings(settings, planner.root)
    except PersistenceFailure as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"ok": True, "settings": settings.to_dict()}


# ── Tasks ─────────────────────────────────────────────────────

@app.get("/api/tasks")
def api_list_tasks(
    day: str | None = None,
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    """Tasks of a day (today by default) in display order."""
    return _day_payload(planner, _day(planner, day))


@app.post("/api/tasks")
def api_create_task(
    payload: dict[str, Any] = Body(...),
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    day = _day(planner, payload.get("day"))
    try:
        planner.tasks.require_capacity(day)
    except CapacityExceeded as e:
        raise HTTPException(status_code=409, detail=str(e))

    task = planner.tasks.add(
        _text(payload),
        _priority(payload.get("priority")),
        date=day,
        deadline=_deadline(payload.get("deadline")),
        reminder_offset=_offset(planner, payload.get("reminder_offset")),
        repeating=bool(payload.get("repeating", False)),
    )
    if task is None:
        raise HTTPException(status_code=503, detail="Task could not be saved")
    return {"ok": True, "task": task.to_dict()}


@app.post("/api/tasks/reorder")
def api_reorder_tasks(
    payload: dict[str, Any] = Body(...),
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    """Body: {"ids": [...]} in the new display order."""
    ids = payload.get("ids")
    if not isinstance(ids, list):
        raise HTTPException(status_code=400, detail="Missing ids")
    tasks = [_task(planner, str(task_id)) for task_id in ids]
    try:
        saved = planner.tasks.reorder(tasks)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    if not saved:
        raise HTTPException(status_code=503, detail="Order could not be saved")
    return {"ok": True, "tasks": [t.to_dict() for t in tasks]}


@app.get("/api/tasks/archive")
def api_task_archive(
    days: int = 30,
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    """Past days with tasks, newest first."""
    return {
        "days": [
            {"day": day.date().isoformat(), "tasks": [t.to_dict() for t in tasks]}
            for day, tasks in planner.tasks.archive(days)
        ]
    }


@app.put("/api/tasks/{task_id}")
def api_update_task(
    task_id: str,
    payload: dict[str, Any] = Body(...),
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    """Edit a task. Omitted fields keep their current value."""
    task = _task(planner, task_id)
    deadline = _deadline(payload["deadline"]) if "deadline" in payload else task.deadline
    if "reminder_offset" in payload:
        offset = _offset(planner, payload["reminder_offset"])
    else:
        offset = task.reminder_offset
    try:
        updated = planner.tasks.update(
            task,
            _text(payload, task.text),
            _priority(payload.get("priority"), task.priority),
            deadline=deadline,
            reminder_offset=offset,
            repeating=bool(payload.get("repeating", task.is_repeating)),
        )
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"ok": True, "task": updated.to_dict()}


@app.delete("/api/tasks/{task_id}")
def api_delete_task(
    task_id: str,
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    task = _task(planner, task_id)
    try:
        deleted = planner.tasks.delete(task)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=503, detail="Task could not be deleted")
    return {"ok": True, "task_id": task_id}


@app.post("/api/tasks/{task_id}/toggle")
def api_toggle_task(
    task_id: str,
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    task = _task(planner, task_id)
    try:
        task = planner.tasks.toggle_completion(task)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"ok": True, "task": task.to_dict()}


@app.post("/api/tasks/{task_id}/move")
def api_move_task(
    task_id: str,
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    """Roll the task over to tomorrow."""
    task = _task(planner, task_id)
    try:
        planner.tasks.require_capacity(tomorrow(planner.now()))
        moved = planner.tasks.move_to_tomorrow(task)
    except CapacityExceeded as e:
        raise HTTPException(status_code=409, detail=str(e))
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    if not moved:
        raise HTTPException(status_code=503, detail="Task could not be moved")
    return {"ok": True, "task": task.to_dict()}


@app.get("/api/focus")
def api_focus(
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    """Today's most important open task."""
    task = planner.tasks.next_open_task()
    return {"task": task.to_dict() if task else None}


@app.post("/api/day/start")
def api_start_day(
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    """Carry yesterday's repeating tasks into today."""
    created = planner.start_day()
    return {"ok": True, "created": [t.to_dict() for t in created]}


# ── Reflections ───────────────────────────────────────────────

@app.get("/api/reflections")
def api_recent_reflections(
    days: int = 7,
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    """Reflections of the last N days, newest first."""
    recent = planner.reflections.list_recent(days)
    return {"count": len(recent), "reflections": [r.to_dict() for r in recent]}


@app.get("/api/reflections/today")
def api_today_reflection(
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    reflection = planner.reflections.get()
    return {
        "reflection": reflection.to_dict() if reflection else None,
        "streak": planner.reflections.current_streak(),
        "shouldPrompt": planner.reflections.should_prompt(),
    }


@app.post("/api/reflections")
def api_save_reflection(
    payload: dict[str, Any] = Body(...),
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    """Save (or replace) a day's reflection with the day's task counts."""
    try:
        mood = Mood(payload.get("mood", Mood.NEUTRAL.value))
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid mood: {payload.get('mood')}")
    reflection = planner.reflect(
        mood,
        went_well=payload.get("went_well") or None,
        shift_consciously=payload.get("shift_consciously") or None,
        date=_day(planner, payload.get("day")),
    )
    if reflection is None:
        raise HTTPException(status_code=503, detail="Reflection could not be saved")
    return {"ok": True, "reflection": reflection.to_dict()}


@app.delete("/api/reflections/{day}")
def api_delete_reflection(
    day: str,
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    reflection = planner.reflections.get(_day(planner, day))
    if reflection is None:
        raise HTTPException(status_code=404, detail=f"No reflection for {day}")
    try:
        deleted = planner.reflections.delete(reflection)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=503, detail="Reflection could not be deleted")
    return {"ok": True, "day": day}


# ── Statistics ────────────────────────────────────────────────

@app.get("/api/statistics/week")
def api_week_statistics(
    day: str | None = None,
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    stats = planner.statistics.week_statistics(_day(planner, day))
    return {"days": [s.to_dict() for s in stats]}


@app.get("/api/statistics/month")
def api_month_statistics(
    day: str | None = None,
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    stats = planner.statistics.month_statistics(_day(planner, day))
    return {"days": [s.to_dict() for s in stats]}


@app.get("/api/statistics/heatmap")
def api_heatmap(
    day: str | None = None,
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    return planner.statistics.heatmap(_day(planner, day)).to_dict()


@app.get("/api/statistics/mood")
def api_mood_history(
    days: int = 30,
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    history = planner.statistics.mood_history(days)
    return {
        "entries": [
            {"date": d.date().isoformat(), "mood": m.value, "emoji": m.emoji, "score": m.score}
            for d, m in history
        ]
    }


@app.get("/api/statistics/summary")
def api_summary(
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    return planner.statistics.summary().to_dict()


# ── Export & wipe ─────────────────────────────────────────────

@app.get("/api/export.json")
def api_export_json(
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> Response:
    return Response(content=planner.statistics.export_as_json(), media_type="application/json")


@app.get("/api/export.md")
def api_export_markdown(
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> PlainTextResponse:
    return PlainTextResponse(planner.statistics.export_as_markdown())


@app.delete("/api/data")
def api_delete_all(
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    """Delete every task, reflection and pending reminder."""
    if not planner.wipe():
        raise HTTPException(status_code=503, detail="Data could not be deleted")
    return {"ok": True}


@app.get("/api/quote")
def api_quote(
    planner: Planner = Depends(get_planner),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    quote = planner.quote()
    if quote is None:
        return {"quote": None}
    return {"quote": {"text": quote.text, "author": quote.author, "formatted": quote.formatted()}}
