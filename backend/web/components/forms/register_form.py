"""
Self-registration form component.
"""
from typing import Dict, Optional

from identity_access.domain import SELF_REGISTER_ROLES

from ..base import Component
from .fields import SelectField, TextInputField
from .submit import SubmitButton


class RegisterForm(Component):
    """Registration form; only roles in SELF_REGISTER_ROLES are offered.

    Args:
        values: Previously submitted values (password is never echoed).
        field_errors: Per-field messages keyed by field id.
        error: Form-level message (e.g., from the API).
    """

    def __init__(
        self,
        *,
        values: Optional[Dict[str, str]] = None,
        field_errors: Optional[Dict[str, str]] = None,
        error: Optional[str] = None,
    ) -> None:
        self.values = values or {}
        self.field_errors = field_errors or {}
        self.error = error

    def render(self) -> str:
        errs = self.field_errors
        text_fields = [
            (TextInputField("first_name", "First name", required=True, error_text=errs.get("first_name")), "text", "given-name"),
            (TextInputField("last_name", "Last name", required=True, error_text=errs.get("last_name")), "text", "family-name"),
            (TextInputField("email", "Email", required=True, error_text=errs.get("email")), "email", "email"),
            (
                TextInputField(
                    "password",
                    "Password",
                    required=True,
                    help_text="At least 6 characters.",
                    error_text=errs.get("password"),
                ),
                "password",
                "new-password",
            ),
        ]
        rendered = [
            field.render(
                value=self.values.get(field.field_id, ""),
                input_type=input_type,
                autocomplete=autocomplete,
                class_="form-input",
            )
            for field, input_type, autocomplete in text_fields
        ]
        role_field = SelectField("role", "Account type", required=True, error_text=errs.get("role"))
        rendered.append(
            role_field.render(
                options=[(r.value, r.value.capitalize()) for r in SELF_REGISTER_ROLES],
                value=self.values.get("role", SELF_REGISTER_ROLES[0].value),
                class_="form-input",
            )
        )
        error_html = f'<div class="form-error" role="alert">{self.escape(self.error)}</div>' if self.error else ""
        submit_btn = SubmitButton("Create account", loading_label="Creating account...")
        fields_html = "\n".join(rendered)
        return f"""
        <form method="post" action="/register" class="auth-form register-form" hx-disabled-elt="find button">
            {fields_html}
            {error_html}
            <div class="form-actions">
                {submit_btn.render()}
            </div>
            <p class="auth-switch">Already registered? <a href="/login">Sign in</a></p>
        </form>
        """
