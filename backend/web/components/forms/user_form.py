"""
Create/edit dialog for managed users.
"""
from typing import Dict, Optional
from urllib.parse import quote

from identity_access.authz import entity_label
from identity_access.domain import Role
from identity_access.models import ManagedUser

from ..base import Component
from .fields import TextInputField
from .submit import SubmitButton


class UserFormDialog(Component):
    """Modal dialog with the user fields for one role.

    Behavior:
        - Create mode (no `user` or `user_id`) posts to `/dashboard/users/{role}` and
          requires a password.
        - Edit mode posts to `/dashboard/users/{role}/{id}`; a blank password
          keeps the current one.
        - Validation errors come back as this dialog again (HTTP 400) and are
          swapped into `#dialog-slot`.
    """

    def __init__(
        self,
        role: Role,
        *,
        user: Optional[ManagedUser] = None,
        user_id: Optional[str] = None,
        values: Optional[Dict[str, str]] = None,
        field_errors: Optional[Dict[str, str]] = None,
        error: Optional[str] = None,
    ) -> None:
        self.role = role
        self.user = user
        self.user_id = user.id if user is not None else user_id
        self.field_errors = field_errors or {}
        self.error = error
        if values is not None:
            self.values = values
        elif user is not None:
            self.values = {"first_name": user.first_name, "last_name": user.last_name, "email": user.email}
        else:
            self.values = {}

    @property
    def is_edit(self) -> bool:
        return self.user_id is not None

    def render(self) -> str:
        base = f"/dashboard/users/{self.role.value}"
        action = f"{base}/{quote(self.user_id, safe='')}" if self.is_edit else base
        singular = entity_label(self.role)[:-1]
        title = f"Edit {singular}" if self.is_edit else f"Add {singular}"
        errs = self.field_errors
        password_help = "Leave blank to keep the current password." if self.is_edit else "At least 6 characters."
        fields = [
            (TextInputField("first_name", "First name", required=True, error_text=errs.get("first_name")), "text"),
            (TextInputField("last_name", "Last name", required=True, error_text=errs.get("last_name")), "text"),
            (TextInputField("email", "Email", required=True, error_text=errs.get("email")), "email"),
            (
                TextInputField(
                    "password",
                    "Password",
                    required=not self.is_edit,
                    help_text=password_help,
                    error_text=errs.get("password"),
                ),
                "password",
            ),
        ]
        fields_html = "\n".join(
            field.render(
                value=self.values.get(field.field_id, ""),
                input_type=input_type,
                autocomplete="new-password" if input_type == "password" else "off",
                class_="form-input",
            )
            for field, input_type in fields
        )
        error_html = f'<div class="form-error" role="alert">{self.escape(self.error)}</div>' if self.error else ""
        submit_btn = SubmitButton("Save changes" if self.is_edit else f"Create {singular}")
        return f"""
        <dialog class="dialog user-form-dialog" open aria-labelledby="user-form-title">
            <form method="post" action="{self.escape(action)}"
                  hx-post="{self.escape(action)}"
                  hx-target="#main-content"
                  hx-disabled-elt="find button[type=submit]"
                  class="user-form">
                <h2 id="user-form-title">{self.escape(title)}</h2>
                {fields_html}
                {error_html}
                <div class="form-actions">
                    <a class="btn btn-secondary" href="{base}" data-action="dialog-close">Cancel</a>
                    {submit_btn.render()}
                </div>
            </form>
        </dialog>
        """
