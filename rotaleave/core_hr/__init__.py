"""Core HR module — the Employee model the leave engine reads roles and reporting lines from."""

from rotaleave.core_hr.models import Employee

__all__ = ["Employee"]
