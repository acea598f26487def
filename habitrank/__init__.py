"""habitrank core library: task registry, day log store and scoring engine.

Public API re-exports for convenient imports:
    from habitrank import MemoryStore, TaskRegistry, DayLogStore, compute_score, ...
"""

# Workspace & settings
from habitrank.workspace import (
    Settings,
    workspace_root,
    settings_path,
    store_path,
    log_dir,
    load_settings,
    init_workspace,
    get_user_timezone,
    today_str,
    now_ms,
)

# Dates
from habitrank.dates import (
    add_days,
    is_day_key,
    is_future_day,
    is_month_key,
    month_key,
    recent_days,
)

# Storage
from habitrank.storage import (
    Storage,
    MemoryStore,
    FileStore,
)

# Normalization
from habitrank.normalize import (
    MAX_ACTIVE_CORE,
    clamp_points,
    normalize_points,
    normalize_tasks,
    can_enable_core_active,
    validate_title,
)

# Tasks
from habitrank.tasks import (
    TaskRegistry,
    create_task,
    update_task,
    toggle_active,
    move_task,
    remove_task,
    find_task,
    seed_tasks_if_empty,
)

# Day logs
from habitrank.daylogs import (
    DayLogStore,
    is_empty_day_log,
    LEGACY_KEY,
    BACKUP_KEY,
    SHARD_PREFIX,
)

# Scoring
from habitrank.scoring import (
    compute_score,
    rank_of,
)

# History
from habitrank.history import (
    history_rows,
    chart_points,
    summarize_history,
)

# Models
from habitrank.models import (
    Task,
    DayLog,
    Rank,
    ScoreResult,
    HistoryRow,
    HistorySummary,
)
