"""
Sign-in form component.
"""
from typing import Optional

from ..base import Component
from .fields import TextInputField
from .submit import SubmitButton


class SignInForm(Component):
    """Email/password form posting to /login.

    `redirected_from` travels as a hidden field; the route re-validates it
    before using it as a redirect target.
    """

    def __init__(
        self,
        *,
        email: str = "",
        error: Optional[str] = None,
        redirected_from: Optional[str] = None,
    ) -> None:
        self.email = email
        self.error = error
        self.redirected_from = redirected_from

    def render(self) -> str:
        email_field = TextInputField("email", "Email", required=True)
        password_field = TextInputField("password", "Password", required=True)
        hidden = (
            f'<input type="hidden" name="redirectedFrom" value="{self.escape(self.redirected_from)}">'
            if self.redirected_from
            else ""
        )
        error_html = f'<div class="form-error" role="alert">{self.escape(self.error)}</div>' if self.error else ""
        submit_btn = SubmitButton("Sign in", loading_label="Signing in...")
        return f"""
        <form method="post" action="/login" class="auth-form login-form" hx-disabled-elt="find button">
            {hidden}
            {email_field.render(value=self.email, input_type="email", autocomplete="email", class_="form-input")}
            {password_field.render(input_type="password", autocomplete="current-password", class_="form-input")}
            {error_html}
            <div class="form-actions">
                {submit_btn.render()}
            </div>
            <p class="auth-switch">No account yet? <a href="/register">Create one</a></p>
        </form>
        """
