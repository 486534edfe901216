# Marketplace admin component system
# Pure Python components for type-safe HTML generation

from .base import Component
from .layout import Layout
from .navigation import Navigation
from .breadcrumbs import Breadcrumbs
from .feedback import Alert, Toast, ToastRegion, LoadingIndicator, AccessDenied, InvalidRole
from .cards import ProfileField, ProfilePanel, SectionCard, SectionCardGrid
from .forms import FormField, TextInputField, SelectField, SubmitButton, SignInForm, RegisterForm, UserFormDialog
from .user_table import UserTable

__all__ = [
    "Component",
    "Layout",
    "Navigation",
    "Breadcrumbs",
    "Alert",
    "Toast",
    "ToastRegion",
    "LoadingIndicator",
    "AccessDenied",
    "InvalidRole",
    "ProfileField",
    "ProfilePanel",
    "SectionCard",
    "SectionCardGrid",
    "FormField",
    "TextInputField",
    "SelectField",
    "SubmitButton",
    "SignInForm",
    "RegisterForm",
    "UserFormDialog",
    "UserTable",
]
