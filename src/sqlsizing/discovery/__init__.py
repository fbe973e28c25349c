from .orchestrator import AdvisorOrchestrator

__all__ = ["AdvisorOrchestrator"]
