"""
Database models for custom user model.
"""

from django.db import models

from django.contrib.auth.models import (
    AbstractBaseUser,
    BaseUserManager,
    PermissionsMixin,
)

from references.models import Department, Program, Role


class UserManager(BaseUserManager):
    """Manager for users."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError("The Email field must be set")
        programs = extra_fields.pop("programs", None)
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        if programs:
            user.programs.set(programs)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """A user in the app; the source of the acting role for workflows."""

    email = models.EmailField(unique=True)
    full_name = models.CharField(max_length=255, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    date_joined = models.DateTimeField(
        auto_now_add=True, db_column="created_at"
    )

    role = models.ForeignKey(
        Role, on_delete=models.SET_NULL, null=True, blank=True
    )
    department = models.ForeignKey(
        Department, on_delete=models.SET_NULL, null=True, blank=True
    )
    # Managers may be responsible for programs across departments.
    programs = models.ManyToManyField(
        Program, blank=True, related_name="managers"
    )
    is_operations_room_member = models.BooleanField(
        default=False,
        help_text="Member of The Operations Room: may act on invoices in "
        "the admin review stage regardless of department.",
    )

    objects = UserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    def __str__(self):
        return self.email

    @property
    def role_name(self) -> str:
        return self.role.name if self.role else ""
