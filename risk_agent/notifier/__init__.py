"""
Outbound notifications — signed risk hook delivery.
"""

from risk_agent.notifier.hook import RiskHookNotifier
from risk_agent.notifier.signing import SIGNATURE_HEADER, sign_payload, verify_signature

__all__ = ["RiskHookNotifier", "SIGNATURE_HEADER", "sign_payload", "verify_signature"]
