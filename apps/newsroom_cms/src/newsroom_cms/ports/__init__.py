"""Ports."""

from newsroom_cms.ports.audit import AuditSink
from newsroom_cms.ports.homepage import HomepageSlotsPort

__all__ = [
    "AuditSink",
    "HomepageSlotsPort",
]
