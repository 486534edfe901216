"""
Form field components.

These small components keep markup consistent across forms: every control
gets a label, optional help text and an error slot wired up via ARIA.
"""

from typing import Optional, Sequence, Tuple

from ..base import Component


class FormField(Component):
    """Wrapper that renders label, input slot, help, and error text."""

    def __init__(
        self,
        field_id: str,
        label: str,
        *,
        required: bool = False,
        help_text: Optional[str] = None,
        error_text: Optional[str] = None,
        state: str = "default",
    ) -> None:
        self.field_id = field_id
        self.label = label
        self.required = required
        self.help_text = help_text
        self.error_text = error_text
        self.state = "error" if error_text and state == "default" else state

    def render(self, input_html: str) -> str:
        state_class = f" form-field--{self.state}" if self.state != "default" else ""
        required_marker = (
            '<span class="form-required" aria-hidden="true">*</span>'
            if self.required
            else ""
        )
        help_html = (
            f'<p class="form-help" id="{self.field_id}-help">{self.escape(self.help_text)}</p>'
            if self.help_text
            else ""
        )
        error_html = (
            f'<p class="form-error" role="alert" id="{self.field_id}-error">{self.escape(self.error_text)}</p>'
            if self.error_text
            else ""
        )

        label_attrs = self.attributes(
            for_=self.field_id,
            class_="form-label",
        )

        return (
            f'<div class="form-field{state_class}">'
            f"<label {label_attrs}>"
            f"{self.escape(self.label)}{required_marker}"
            "</label>"
            f"{input_html}"
            f"{help_html}"
            f"{error_html}"
            "</div>"
        )

    def _describedby(self) -> Optional[str]:
        ids = []
        if self.help_text:
            ids.append(f"{self.field_id}-help")
        if self.error_text:
            ids.append(f"{self.field_id}-error")
        return " ".join(ids) or None


class TextInputField(FormField):
    """Single-line text input field with consistent wrapper and labeling.

    Parameters:
        field_id: Name/id attribute for the input.
        label: Visible label text.
        input_type: One of 'text', 'email', 'password'. Defaults to 'text'.
        required: Whether the field is required.
        help_text: Optional help text shown below the field.
        error_text: Optional error message shown below the field.

    Behavior:
        - Renders <input> with appropriate ARIA attributes.
        - Password inputs never echo a value back into the markup.
    """

    def render(
        self,
        *,
        value: str = "",
        input_type: str = "text",
        autocomplete: Optional[str] = None,
        placeholder: Optional[str] = None,
        **attrs: str,
    ) -> str:
        input_attrs = self.attributes(
            id=self.field_id,
            name=self.field_id,
            type=input_type,
            value=None if input_type == "password" else value,
            autocomplete=autocomplete,
            placeholder=placeholder,
            required=self.required,
            aria_describedby=self._describedby(),
            aria_invalid="true" if self.error_text else "false",
            **attrs,
        )
        input_html = f"<input {input_attrs}>"
        return super().render(input_html)


class SelectField(FormField):
    """Drop-down with (value, label) options."""

    def render(self, *, options: Sequence[Tuple[str, str]], value: str = "", **attrs: str) -> str:
        select_attrs = self.attributes(
            id=self.field_id,
            name=self.field_id,
            required=self.required,
            aria_describedby=self._describedby(),
            aria_invalid="true" if self.error_text else "false",
            **attrs,
        )
        option_html = "".join(
            f'<option {self.attributes(value=opt_value, selected=(opt_value == value))}>{self.escape(opt_label)}</option>'
            for opt_value, opt_label in options
        )
        return super().render(f"<select {select_attrs}>{option_html}</select>")
