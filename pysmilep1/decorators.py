import functools
import logging

from pysmilep1.exceptions import NotLoggedInError

log = logging.getLogger('pysmilep1')


# Login Decorator
# Refuses the call before any request is made unless the session is logged in
def uses_login_required(func):
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        if not self.logged_in:
            log.error(f"Not logged in - Unable to run {func.__name__}")
            raise NotLoggedInError()
        return func(self, *args, **kwargs)
    return wrapper
