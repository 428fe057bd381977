from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import User


@admin.register(User)
class LabUserAdmin(UserAdmin):
    list_display = ("email", "first_name", "last_name", "phone", "role", "is_staff")
    list_filter = ("role", "is_staff", "is_active")
    fieldsets = UserAdmin.fieldsets + (("Laboratory", {"fields": ("phone", "role")}),)
