from django import forms
from django.core.validators import RegexValidator

from .models import User

mobile_validator = RegexValidator(r"^\d{1,16}$", "The mobile must be between 1 and 16 digits.")

class ChangePasswordForm(forms.Form):
    old_password = forms.CharField(
        widget=forms.PasswordInput(attrs={"class": "form-control"}),
        error_messages={"required": "The old password field is required."},
    )
    new_password = forms.CharField(
        min_length=8,
        widget=forms.PasswordInput(attrs={"class": "form-control"}),
        error_messages={
            "required": "The new password field is required.",
            "min_length": "The new password must be at least 8 characters.",
        },
    )
    confirm_password = forms.CharField(
        widget=forms.PasswordInput(attrs={"class": "form-control"}),
        error_messages={"required": "The confirm password field is required."},
    )

    def clean(self):
        cleaned = super().clean()
        new = cleaned.get("new_password")
        confirm = cleaned.get("confirm_password")
        if new and confirm and new != confirm:
            self.add_error("confirm_password", "The confirm password and new password must match.")
        return cleaned

class ProfileForm(forms.ModelForm):
    REQUIRED = ("first_name", "last_name", "gender", "dob", "email", "current_address", "permanent_address")

    mobile = forms.CharField(required=False, validators=[mobile_validator])

    class Meta:
        model = User
        fields = [
            "first_name", "last_name", "mobile", "gender", "dob", "email",
            "current_address", "permanent_address", "image",
        ]
        widgets = {
            "dob": forms.DateInput(attrs={"type": "date", "class": "form-control"}),
            "current_address": forms.Textarea(attrs={"class": "form-control", "rows": 2}),
            "permanent_address": forms.Textarea(attrs={"class": "form-control", "rows": 2}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for name in self.REQUIRED:
            field = self.fields[name]
            field.required = True
            field.error_messages["required"] = f"The {name.replace('_', ' ')} field is required."
