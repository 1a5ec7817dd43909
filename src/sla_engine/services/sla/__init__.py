"""SLA deadline, risk, impact, scanning and compliance."""

from .compliance import generate_sla_compliance_report
from .deadline import calculate_sla_deadline
from .impact import calculate_delivery_time_impact
from .risk import validate_sla
from .scanner import AtRiskScanner
from .scheduler import ScanScheduler
from .service import SLAService
from .status import validate_status_transition

__all__ = [
    "AtRiskScanner",
    "SLAService",
    "ScanScheduler",
    "calculate_delivery_time_impact",
    "calculate_sla_deadline",
    "generate_sla_compliance_report",
    "validate_sla",
    "validate_status_transition",
]
