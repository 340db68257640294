from django.contrib import admin

from .models import Quote


@admin.register(Quote)
class QuoteAdmin(admin.ModelAdmin):
    list_display = ("reference", "client_name", "status", "created_by", "locked_by", "version", "updated_at")
    search_fields = ("reference", "client_name", "contact_name")
    list_filter = ("status", "default_lease_term_months", "updated_at")
    date_hierarchy = "quote_date"
    readonly_fields = ("id", "version", "created_at", "updated_at")
    actions = ["release_locks"]

    def get_readonly_fields(self, request, obj=None):
        ro = list(super().get_readonly_fields(request, obj))
        if obj and obj.locked_by_id and obj.locked_by_id != request.user.pk:
            # someone is editing it; lock the whole form
            for f in obj._meta.fields:
                if f.name not in ro:
                    ro.append(f.name)
        return ro

    @admin.action(description="Release edit locks")
    def release_locks(self, request, queryset):
        released = queryset.exclude(locked_by=None).update(locked_by=None, locked_at=None)
        self.message_user(request, f"Released {released} lock(s).")
