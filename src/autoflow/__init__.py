"""
autoflow - event-triggered automation engine.

Automations are per-workspace graphs of trigger, action and condition
nodes.  Domain events start runs; every node executes in its own database
transaction under the run's row lock, so redelivered jobs are harmless and
a run completes exactly when its last pending node finishes.

Packages:
    core        settings, errors, ORM tables and sessions
    framework   structured logging
    automation  definitions, context, runners, executor, engine, dry run
    execution   node queues and the Celery task
    api         FastAPI read router
    cli         ``autoflow`` Typer app
"""

__version__ = "0.1.0"
