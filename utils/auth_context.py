from flask import g
from models import db
from models.user import User
from security.session import get_session_from_request

def load_current_user():
    sess = get_session_from_request()
    if not sess:
        g.user = None
        g.session = None
        return
    user = db.session.get(User, sess.user_id)
    # disabled accounts lose access immediately
    if user is None or not user.is_active:
        g.user = None
        g.session = None
        return
    g.session = sess
    g.user = user
