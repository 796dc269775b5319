from django.contrib.admin import AdminSite
from django.shortcuts import redirect
from django.urls import reverse


class CineTrackAdminSite(AdminSite):
    """
    Back office for moderators. The landing page is the user list, since
    blocking and unblocking accounts is what the site is mostly used for.
    """
    site_header = 'CineTrack Administration'
    site_title = 'CineTrack Admin'
    index_title = 'Users, friendships and collections'
    site_url = '/api/schema/swagger-ui/'

    def index(self, request, extra_context=None):
        return redirect(reverse(f'{self.name}:users_user_changelist'))

    def has_permission(self, request):
        # Blocked staff keep their session but lose the back office
        return super().has_permission(request) and not getattr(request.user, 'is_blocked', False)


cinetrack_admin_site = CineTrackAdminSite(name='cinetrack_admin')
