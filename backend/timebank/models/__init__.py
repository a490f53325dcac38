from .employees import Employee, OvertimeException, ROLE_ADMIN, ROLE_MANAGER, ROLE_EMPLOYEE, ROLES
from .auth import SessionToken
from .timeclock import TimeClockRecord, Justification
from .hour_bank import HourBankRecord
from .overtime import OvertimeRequest
from .settings import CompanySettings
from .audit import AuditLog

__all__ = [
    'Employee', 'OvertimeException', 'ROLE_ADMIN', 'ROLE_MANAGER', 'ROLE_EMPLOYEE', 'ROLES',
    'SessionToken',
    'TimeClockRecord', 'Justification',
    'HourBankRecord',
    'OvertimeRequest',
    'CompanySettings',
    'AuditLog',
]
