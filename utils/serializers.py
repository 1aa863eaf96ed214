def _iso(value):
    return value.isoformat() if value else None


def role_json(role):
    return {
        "id": role.id,
        "name": role.name,
        "description": role.description,
        "created_at": _iso(role.created_at),
    }


def user_json(user):
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "phone": user.phone,
        "is_active": user.is_active,
        "registration_date": _iso(user.registration_date),
        "role": {"id": user.role.id, "name": user.role.name} if user.role else None,
    }


def facility_json(f):
    return {
        "id": f.id,
        "name": f.name,
        "description": f.description,
        "capacity": f.capacity,
        "status": f.status,
        "opening_hour": f.opening_hour,
        "closing_hour": f.closing_hour,
        "activity_ids": f.activity_ids,
        "created_at": _iso(f.created_at),
        "updated_at": _iso(f.updated_at),
    }


def activity_json(a):
    return {
        "id": a.id,
        "name": a.name,
        "description": a.description,
        "duration_minutes": a.duration_minutes,
        "price": a.price,
        "max_participants": a.max_participants,
        "is_active": a.is_active,
        "facility_ids": a.facility_ids,
    }


def slot_json(s, available=None):
    return {
        "id": s.id,
        "facility_id": s.facility_id,
        "start_time": _iso(s.start_time),
        "end_time": _iso(s.end_time),
        "is_available": s.is_available if available is None else available,
    }


def reservation_json(r):
    slot = r.time_slot
    activity = r.activity
    return {
        "id": r.id,
        "user_id": r.user_id,
        "activity_id": r.activity_id,
        "slot_id": r.slot_id,
        "status": r.status,
        "total_price": r.total_price,
        "cancellation_reason": r.cancellation_reason,
        "internal_notes": r.internal_notes,
        "created_at": _iso(r.created_at),
        "updated_at": _iso(r.updated_at),
        "time_slot": {
            **slot_json(slot),
            "facility_name": slot.facility.name if slot.facility else None,
        } if slot else None,
        "activity": {"id": activity.id, "name": activity.name} if activity else None,
    }


def shift_json(shift):
    user = shift.employee.user
    return {
        "id": shift.id,
        "employee_id": shift.employee_id,
        "user_id": user.id,
        "employee_name": user.full_name,
        "start_time": _iso(shift.start_time),
        "end_time": _iso(shift.end_time),
        "shift_type": shift.shift_type,
    }
