"""Email template registry — maps "<path>/<name>" to template classes.

A notification email is looked up along its template path (the target's
resources name, then ``default``) under the notification key with dots
turned into slashes, e.g. ``users/comment/create``. Hosts register their
own templates with ``register_template``.
"""

from activity.errors import TemplateMissingError
from activity.mailer.templates.batch_default import BatchDefaultTemplate
from activity.mailer.templates.default import DefaultTemplate

TEMPLATE_REGISTRY: dict[str, type] = {
    "default/default": DefaultTemplate,
    "default/batch_default": BatchDefaultTemplate,
}

_BUILTIN_TEMPLATES = dict(TEMPLATE_REGISTRY)


def register_template(path: str, name: str):
    """Class decorator registering an email template under ``path/name``."""

    def decorator(template_cls):
        TEMPLATE_REGISTRY[f"{path}/{name}"] = template_cls
        return template_cls

    return decorator


def get_template(template_path: list[str], template_name: str):
    """Return the first template found along ``template_path``.

    Raises:
        TemplateMissingError: no path holds ``template_name``.
    """
    for path in template_path:
        template_cls = TEMPLATE_REGISTRY.get(f"{path}/{template_name}")
        if template_cls is not None:
            return template_cls
    raise TemplateMissingError(template_path, template_name)


def reset_templates():
    """Drop host registrations, keeping the built-in templates (useful for testing)."""
    TEMPLATE_REGISTRY.clear()
    TEMPLATE_REGISTRY.update(_BUILTIN_TEMPLATES)
