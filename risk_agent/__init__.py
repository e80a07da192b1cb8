"""
Risk Agent — real-time risk scoring for on-chain payment actions.

Scores a proposed action (transfer, claim, refund, contribution, escrow open,
vault deposit) before it is submitted to the chain. Three independent policies
(address reputation, amount anomaly, velocity/burst) are combined into one
bounded score and mapped to allow / hold / escalate / deny.
"""

__version__ = "0.1.0"
