"""Command validation package."""

from tripledger.validation.validator import SUSPICIOUS_AMOUNT, CommandValidator

__all__ = ["SUSPICIOUS_AMOUNT", "CommandValidator"]
