"""
Long-running task support.

Components:
- run_models.py: value types (SetupOptions, Recurrence, TaskRun)
- run_codec.py: TaskRun <-> flat property keys
- run_registry.py: checkpoint/resume protocol (RunRegistry)
- run_api.py: helper that drives one invocation of an incremental task
"""
