from django.conf import settings
from django.utils.module_loading import import_string


def load_collaborator(setting_name):
    """
    Resolve an external collaborator configured as a dotted path.

    Classes are instantiated, plain callables are returned as-is. An empty
    setting means the collaborator is not configured and None is returned.
    """
    path = getattr(settings, setting_name, '')
    if not path:
        return None
    target = import_string(path)
    if isinstance(target, type):
        return target()
    return target
