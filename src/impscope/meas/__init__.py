"""
Measurement session buffer and electrode diagnosis.

Examples
--------
```python
from impscope.calib import CalibrationEngine
from impscope.meas import CalibrationSource, DiagnosisEngine, MeasurementStore

store = MeasurementStore()
store.ingest_all({1: 1.2, 2: 4.0})
engine = CalibrationEngine()
engine.select_point("A", 1.8, 300)
engine.select_point("A", 9.4, 15000)
results = DiagnosisEngine().diagnose(store, CalibrationSource.from_session(engine))
[r.display_text for r in results]  # ['SHORT (1.6)', '1']
```
"""

from .diagnosis import (
    CalibrationSource,
    DiagnosedChannel,
    DiagnosisDefaults,
    DiagnosisEngine,
    ElectrodeStatus,
    StatusSummary,
    classify_text,
    diagnose_channel,
    summarize,
    to_channel_results,
)
from .store import MeasurementStore

__all__ = [
    "CalibrationSource",
    "DiagnosedChannel",
    "DiagnosisDefaults",
    "DiagnosisEngine",
    "ElectrodeStatus",
    "MeasurementStore",
    "StatusSummary",
    "classify_text",
    "diagnose_channel",
    "summarize",
    "to_channel_results",
]
