"""
Application constants
"""

# Storage keys
TASKS_KEY = "tasks"
USERS_KEY = "users"
TEAMS_KEY = "teams"

# Id prefixes
TASK_ID_PREFIX = "task"
USER_ID_PREFIX = "user"
TEAM_ID_PREFIX = "team"
COMMENT_ID_PREFIX = "comment"
NOTE_ID_PREFIX = "note"
ACTIVITY_ID_PREFIX = "activity"
NOTIFICATION_ID_PREFIX = "notification"

# Task field limits
TASK_TITLE_MAX_LENGTH = 100
TASK_DESCRIPTION_MAX_LENGTH = 500
COMMENT_PREVIEW_LENGTH = 100

# User field limits
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30

# Repository cache
DEFAULT_CACHE_TTL_SECONDS = 5.0

# Feed / notification caps
MAX_ACTIVITIES = 1000
MAX_NOTIFICATIONS_PER_USER = 100

# Collaboration limits
MAX_COLLABORATORS_PER_TASK = 50
MAX_COMMENTS_PER_TASK = 1000

# Paging defaults
DEFAULT_ACTIVITY_LIMIT = 20
DEFAULT_TEAM_ACTIVITY_LIMIT = 50
DEFAULT_NOTIFICATION_LIMIT = 20
DEFAULT_COLLABORATOR_LIMIT = 20

# Collaboration score weights
COLLABORATION_SCORE_WEIGHTS = {
    "tasks_created": 2,
    "tasks_completed": 3,
    "tasks_assigned": 1,
    "tasks_shared": 1,
    "comments_posted": 1,
    "reviews_given": 2,
    "reviews_received": 1,
    "mentoring_sessions": 3,
}

# Team role permissions ("*" grants everything)
TEAM_ROLE_PERMISSIONS = {
    "member": ["read", "comment"],
    "contributor": ["read", "comment", "create", "edit_own"],
    "maintainer": ["read", "comment", "create", "edit_own", "edit_any", "assign"],
    "lead": ["read", "comment", "create", "edit_own", "edit_any", "assign", "manage_team"],
    "admin": ["*"],
}

# Logging
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "taskhub.log"
