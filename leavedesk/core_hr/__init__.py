"""Core HR module — Company, Employee and DelegateApprover models, schemas and services."""

from leavedesk.core_hr.models import Company, DelegateApprover, Employee

__all__ = ["Company", "Employee", "DelegateApprover"]
