"""ZenPlaner core library — domain model, services and statistics.

Public API re-exports for convenient imports:
    from core import Planner, TaskStore, Priority, Mood, ...
"""

# Workspace & settings
from core.workspace import (
    Settings,
    workspace_root,
    load_settings,
    save_settings,
    now_local,
    configure_logging,
    settings_path,
    tasks_path,
    reflections_path,
    reminders_path,
    quotes_path,
    hooks_config_path,
)

# Errors
from core.errors import (
    PlannerError,
    CapacityExceeded,
    NotFound,
    PersistenceFailure,
)

# Dates
from core.dates import (
    start_of_day,
    end_of_day,
    same_day,
    is_today,
    days_ago,
    tomorrow,
    days_of_week,
    days_of_month,
    weekday_index,
    is_after_time,
    count_streak,
    format_day_long,
    format_day_short,
    format_month_year,
    weekday_short,
)

# Models
from core.models import (
    Priority,
    ReminderOffset,
    Mood,
    Task,
    DailyReflection,
    DayStatistic,
    Heatmap,
    StatisticsSummary,
)

# Storage
from core.storage import Store, FileStore, MemoryStore

# Side effects
from core.reminders import (
    ReminderScheduler,
    ReminderQueue,
    NullReminders,
    SettingsPermission,
    fire_time,
)
from core.hooks import HookSignals, NullSignals, run_hooks

# Services
from core.tasks import MAX_TASKS_PER_DAY, TaskStore
from core.reflections import ReflectionService
from core.statistics import StatisticsEngine
from core.quotes import Quote, quote_of_the_day, load_quotes
from core.planner import Planner
