from models import db
from models.time_slot import TimeSlot
from models.user import ROLE_ADMIN, ROLE_USER, User


def test_make_admin_promotes_user(app, make_user):
    user_id = make_user(ROLE_USER, email="boss@example.com")

    result = app.test_cli_runner().invoke(args=["make-admin", "Boss@Example.com"])

    assert "promoted to ADMIN" in result.output
    with app.app_context():
        assert db.session.get(User, user_id).role_name == ROLE_ADMIN


def test_make_admin_unknown_email(app):
    result = app.test_cli_runner().invoke(args=["make-admin", "nobody@example.com"])

    assert "User not found" in result.output


def test_generate_slots_command(app, venue):
    result = app.test_cli_runner().invoke(args=["generate-slots", "--days", "1"])

    assert result.exit_code == 0
    assert "Main Hall: 12 generated" in result.output
    with app.app_context():
        assert TimeSlot.query.filter_by(facility_id=venue["facility_id"]).count() == 12


def test_generate_slots_command_with_zero_days(app, venue):
    result = app.test_cli_runner().invoke(args=["generate-slots", "--days", "0"])

    assert result.exit_code == 0
    assert "Main Hall: 0 generated" in result.output
    with app.app_context():
        assert TimeSlot.query.filter_by(facility_id=venue["facility_id"]).count() == 0
