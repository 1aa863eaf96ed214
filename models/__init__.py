from .db import db
from .user import User, Role
from .audit_log import AuditLog
from .session import Session
from .facility import Facility
from .activity import Activity, FacilityActivity
from .time_slot import TimeSlot
from .reservation import Reservation
from .employee import Employee, EmployeeShift
from .system_setting import SystemSetting
from .report import Report
