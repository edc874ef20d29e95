"""
Enhancement orchestration and admission control.
"""

from .admission import AdmissionGate
from .orchestrator import EnhancementOrchestrator, STYLE_GRADES

__all__ = ['AdmissionGate', 'EnhancementOrchestrator', 'STYLE_GRADES']
