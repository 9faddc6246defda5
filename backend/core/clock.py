from datetime import datetime


def get_now() -> datetime:
    """Current local wall-clock time, truncated to whole seconds.

    Route handlers receive this through ``Depends`` so tests can pin it.
    """
    return datetime.now().replace(microsecond=0)
