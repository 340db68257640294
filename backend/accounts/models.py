# backend/accounts/models.py

from django.contrib.auth.models import AbstractUser
from django.db import models


class CustomUser(AbstractUser):
    ROLE_CHOICES = [
        ('sales_rep', 'Sales Rep'),
        ('key_account', 'Key Account Manager'),
        ('sales_manager', 'Sales Manager'),
        ('local_leader', 'Local Leader'),
        ('ceo', 'CEO'),
        ('system_admin', 'System Admin'),
    ]
    # Higher levels can approve work submitted from lower ones
    ROLE_LEVELS = {
        'sales_rep': 1,
        'key_account': 1,
        'sales_manager': 2,
        'local_leader': 3,
        'ceo': 4,
        'system_admin': 5,
    }
    APPROVER_ROLES = ('sales_manager', 'local_leader', 'ceo', 'system_admin')

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='sales_rep')

    @property
    def role_level(self) -> int:
        return self.ROLE_LEVELS.get(self.role, 0)

    @property
    def can_approve_quotes(self) -> bool:
        return self.role in self.APPROVER_ROLES

    @property
    def can_view_all_quotes(self) -> bool:
        return self.role != 'sales_rep'

    @property
    def can_edit_any_quote(self) -> bool:
        return self.role == 'system_admin'

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"
