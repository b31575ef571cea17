from functools import wraps
from flask_login import current_user


def with_identity(view):
    """Pass the caller's id to the view as ``user_id`` (None when anonymous).

    Services decide what an anonymous caller may do; views never read
    ``current_user`` themselves.
    """
    @wraps(view)
    def wrapped(*args, **kwargs):
        kwargs["user_id"] = current_user.id if current_user.is_authenticated else None
        return view(*args, **kwargs)
    return wrapped
