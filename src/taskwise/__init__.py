"""
taskwise: to-do list core.

Subpackages:
- tasks: models, SQLite store, cron calculator, scheduled-task sweep, task API, dashboard
- assistant: AI assistant threads and messages
- llm: OpenAI-compatible streaming client (+ offline fallback)
- core: ports, errors, rate limiting, AppState
- cli / connectors: composition root, slash commands, console REPL
"""
