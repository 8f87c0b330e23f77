"""
Sync Module.

Directory-level test creation and report upload flows against Xray.
"""

from xray_sync.sync.orchestrator import OutcomeStatus, SyncOrchestrator, SyncOutcome

__all__ = ["OutcomeStatus", "SyncOrchestrator", "SyncOutcome"]
