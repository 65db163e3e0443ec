from django import forms
from django.contrib.auth import get_user_model

from rbac.models import Role
from .models import ROLES, SEND_TO_CHOICES, SPECIFIC_USERS
from .recipients import pickable_users

User = get_user_model()

class NotificationForm(forms.Form):
    title = forms.CharField(
        max_length=255,
        error_messages={"required": "Title is required."},
        widget=forms.TextInput(attrs={"class": "form-control"}),
    )
    message = forms.CharField(
        error_messages={"required": "Message is required."},
        widget=forms.Textarea(attrs={"class": "form-control", "rows": 4}),
    )
    type = forms.ChoiceField(
        choices=SEND_TO_CHOICES,
        error_messages={"required": "Notification type is required."},
        widget=forms.Select(attrs={"class": "form-select"}),
    )
    roles = forms.MultipleChoiceField(required=False, widget=forms.SelectMultiple(attrs={"class": "form-select"}))
    user = forms.ModelMultipleChoiceField(queryset=User.objects.all(), required=False)
    all_users = forms.CharField(required=False, widget=forms.HiddenInput)
    image = forms.FileField(required=False, widget=forms.ClearableFileInput(attrs={"class": "form-control"}))

    def __init__(self, *args, actor=None, **kwargs):
        super().__init__(*args, **kwargs)
        if actor is not None:
            self.fields["user"].queryset = pickable_users(actor)
        names = Role.objects.values_list("name", flat=True)
        self.fields["roles"].choices = [(n, n) for n in names]

    def clean(self):
        cleaned = super().clean()
        send_to = cleaned.get("type")
        if send_to == ROLES and not cleaned.get("roles"):
            self.add_error("roles", 'Please select roles if the notification type is "Roles".')
        if send_to == SPECIFIC_USERS and not cleaned.get("user"):
            self.add_error("user", 'Please select users if the notification type is "Specific users".')
        cleaned["users"] = [u.pk for u in cleaned.get("user") or []]
        return cleaned
