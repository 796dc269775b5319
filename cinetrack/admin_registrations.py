from django.contrib import admin
from .admin import cinetrack_admin_site
from users.models import User
from friends.models import Friendship
from library.models import Media, MediaEntry

# Register Users models
@admin.register(User, site=cinetrack_admin_site)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'first_name', 'last_name', 'role', 'is_blocked', 'date_joined')
    search_fields = ('email', 'first_name', 'last_name')
    list_filter = ('role', 'is_blocked', 'is_active', 'date_joined')
    readonly_fields = ('date_joined', 'last_login', 'updated_at')
    exclude = ('password',)
    actions = ['block_users', 'unblock_users']

    @admin.action(description='Block selected users')
    def block_users(self, request, queryset):
        for user in queryset.exclude(pk=request.user.pk):
            user.block('Blocked from the admin site')

    @admin.action(description='Unblock selected users')
    def unblock_users(self, request, queryset):
        for user in queryset:
            user.unblock()

# Register Friends models
@admin.register(Friendship, site=cinetrack_admin_site)
class FriendshipAdmin(admin.ModelAdmin):
    list_display = ('requester', 'recipient', 'status', 'created_at', 'updated_at')
    list_filter = ('status', 'created_at')
    search_fields = ('requester__email', 'recipient__email')
    raw_id_fields = ('requester', 'recipient')

# Register Library models
@admin.register(Media, site=cinetrack_admin_site)
class MediaAdmin(admin.ModelAdmin):
    list_display = ('title', 'type', 'release_year', 'external_id', 'rating')
    search_fields = ('title', 'original_title', 'external_id', 'director')
    list_filter = ('type', 'release_year')

@admin.register(MediaEntry, site=cinetrack_admin_site)
class MediaEntryAdmin(admin.ModelAdmin):
    list_display = ('user', 'media', 'status', 'user_rating', 'updated_at')
    list_filter = ('status', 'updated_at')
    search_fields = ('user__email', 'media__title')
    raw_id_fields = ('user', 'media')
