import logging
import secrets
from typing import TYPE_CHECKING

from fastapi.templating import Jinja2Templates

from app.core.users import models_users
from app.core.users.types_users import UserRole
from app.utils.mail.mailworker import send_email

if TYPE_CHECKING:
    from app.core.utils.config import Settings


hub_error_logger = logging.getLogger("hub.error")


templates = Jinja2Templates(directory="assets/templates")


def is_user_manager_of_facility(
    user: models_users.CoreUser,
    facility_manager_id: str | None,
) -> bool:
    """
    Check if the user is allowed to manage a facility: administrators manage every facility,
    facility managers only the ones they are assigned to.
    """
    if user.role == UserRole.admin:
        return True
    return (
        user.role == UserRole.facility_manager
        and facility_manager_id is not None
        and facility_manager_id == user.id
    )


def get_random_string(length: int = 5) -> str:
    return "".join(
        secrets.choice("ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789") for _ in range(length)
    )


def send_templated_email(
    recipient: str | list[str],
    subject: str,
    template_name: str,
    context: dict,
    settings: "Settings",
) -> None:
    """
    Render a template from `assets/templates` and send it if SMTP is enabled.
    Meant to be used from a `BackgroundTasks`: sending errors are logged and never raised.
    """
    content = templates.get_template(template_name).render(context)

    if not settings.SMTP_ACTIVE:
        hub_error_logger.debug(
            f"SMTP is disabled, email {subject} to {recipient} was not sent",
        )
        return

    try:
        send_email(
            recipient=recipient,
            subject=subject,
            content=content,
            settings=settings,
        )
    except Exception:
        hub_error_logger.exception(
            f"Error while sending email with subject {subject} to {recipient}",
        )
