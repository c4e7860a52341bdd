"""
Task subsystem.

Components:
- task_models.py: data structures (Task, ScheduledTask, Thread, Message, UserPreferences)
- task_store.py: SQLite-backed storage + query/update helpers
- cron.py: next-run calculation for the supported cron subset
- task_scheduler.py: scheduled-task sweep and the polling job loop
- task_api.py: user-facing operations (rate limit, validation, ownership)
- dashboard.py: aggregate counters and recent activity
"""
