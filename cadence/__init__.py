"""
Cadence
=======

A lifecycle engine for two date‑driven entity families: data‑collection
batches (``draft → active → closed``, with pause/resume) and governance
terms (``upcoming → active → completed``).

Import structure
----------------
`import cadence` is intentionally cheap: only the stdlib-based
sub‑modules are imported by default.  The SQLite store
(:pymod:`cadence.db`, :pymod:`cadence.registry_db`) pulls in *sqlmodel*
and is only imported when you explicitly ask for it.

Sub‑modules
~~~~~~~~~~~
- :pymod:`cadence.models`       – ``Entity`` dataclass + status enums
- :pymod:`cadence.lifecycle`    – status table (``require_transition``)
- :pymod:`cadence.guards`       – pure transition guards
- :pymod:`cadence.sweep`        – automatic proposals (``sweep``)
- :pymod:`cadence.executor`     – ``TransitionExecutor`` (compare‑and‑swap writes)
- :pymod:`cadence.extension`    – ``ExtensionPlanner``
- :pymod:`cadence.pause`        – ``PauseResumeController``
- :pymod:`cadence.registry`     – ``EntityRegistry`` in‑memory store
- :pymod:`cadence.service`      – ``LifecycleService`` facade

Quick start
-----------
>>> from datetime import date
>>> from cadence.service import LifecycleService
>>> svc = LifecycleService()
>>> a = svc.create("batch", "Q1 Survey", date(2025, 1, 10), date(2025, 1, 20))
>>> svc.refresh("batch", today=date(2025, 1, 10)).entities[0].status
<BatchStatus.ACTIVE: 'active'>

"""

__all__ = [
    "models",
    "lifecycle",
    "guards",
    "sweep",
    "executor",
    "extension",
    "pause",
    "registry",
    "service",
]

__version__ = "0.1.0"
