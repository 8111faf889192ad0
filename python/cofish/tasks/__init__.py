"""Celery tasks for CoFish.

Tasks are imported here explicitly to register them; there is no
autodiscovery.
"""

from cofish.tasks.analyze_catch import analyze_catch

__all__ = ["analyze_catch"]
