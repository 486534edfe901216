"""
Form components for the marketplace admin.

Provides basic building blocks such as FormField and SubmitButton plus the
composed sign-in, registration and user dialogs.
"""

from .fields import FormField, TextInputField, SelectField
from .submit import SubmitButton
from .login_form import SignInForm
from .register_form import RegisterForm
from .user_form import UserFormDialog

__all__ = [
    "FormField",
    "TextInputField",
    "SelectField",
    "SubmitButton",
    "SignInForm",
    "RegisterForm",
    "UserFormDialog",
]
