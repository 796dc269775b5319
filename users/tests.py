from django.contrib.auth.tokens import default_token_generator
from django.core import mail
from django.urls import reverse
from django.utils.encoding import force_bytes
from django.utils.http import urlsafe_base64_encode
from rest_framework.test import APIClient, APITestCase
from rest_framework import status
from rest_framework_simplejwt.tokens import RefreshToken
from friends.models import Friendship
from library.models import Media, MediaEntry
from .models import User


class UserModelTests(APITestCase):
    def test_create_user_normalizes_email(self):
        user = User.objects.create_user(
            email='Mixed.Case@Example.COM',
            password='password123',
            first_name='Mixed',
            last_name='Case',
        )
        self.assertEqual(user.email, 'mixed.case@example.com')
        self.assertEqual(user.username, 'mixed.case@example.com')
        self.assertEqual(user.role, User.Role.USER)
        self.assertFalse(user.is_blocked)
        self.assertTrue(user.check_password('password123'))

    def test_create_superuser_is_admin(self):
        user = User.objects.create_superuser(
            email='root@example.com', password='password123',
            first_name='Root', last_name='Admin',
        )
        self.assertTrue(user.is_admin)
        self.assertTrue(user.is_staff)

    def test_block_and_unblock(self):
        user = User.objects.create_user(
            email='blockme@example.com', password='password123',
            first_name='Block', last_name='Me',
        )
        user.block('Spam')
        user.refresh_from_db()
        self.assertTrue(user.is_blocked)
        self.assertEqual(user.block_reason, 'Spam')

        user.unblock()
        user.refresh_from_db()
        self.assertFalse(user.is_blocked)
        self.assertIsNone(user.block_reason)

    def test_full_name(self):
        user = User(email='nameless@example.com')
        self.assertEqual(user.full_name, 'nameless@example.com')
        user.first_name = 'Ann'
        user.last_name = 'Lee'
        self.assertEqual(user.full_name, 'Ann Lee')


class AuthenticationTests(APITestCase):
    def setUp(self):
        self.client = APIClient()
        self.register_url = reverse('users:register')
        self.token_url = reverse('users:token_obtain_pair')
        self.logout_url = reverse('users:logout')
        self.password = 'Sup3rSecret!pass'
        self.user = User.objects.create_user(
            email='existing@example.com',
            password=self.password,
            first_name='Existing',
            last_name='User',
        )

    def test_register(self):
        data = {
            'email': 'New.User@Example.com',
            'password': self.password,
            'password_confirm': self.password,
            'first_name': 'New',
            'last_name': 'User',
        }
        response = self.client.post(self.register_url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message'], 'User created successfully')
        self.assertEqual(response.data['user']['email'], 'new.user@example.com')
        self.assertEqual(response.data['user']['role'], User.Role.USER)
        self.assertIn('access', response.data['tokens'])
        self.assertIn('refresh', response.data['tokens'])
        self.assertTrue(User.objects.filter(email='new.user@example.com').exists())

    def test_register_duplicate_email_is_case_insensitive(self):
        data = {
            'email': 'EXISTING@example.com',
            'password': self.password,
            'password_confirm': self.password,
            'first_name': 'Dup',
            'last_name': 'User',
        }
        response = self.client.post(self.register_url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('email', response.data['detail'])

    def test_register_password_mismatch(self):
        data = {
            'email': 'mismatch@example.com',
            'password': self.password,
            'password_confirm': 'Different!pass1',
            'first_name': 'Miss',
            'last_name': 'Match',
        }
        response = self.client.post(self.register_url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], "Password fields don't match.")

    def test_register_requires_names(self):
        data = {
            'email': 'noname@example.com',
            'password': self.password,
            'password_confirm': self.password,
            'first_name': '   ',
            'last_name': 'User',
        }
        response = self.client.post(self.register_url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('first_name', response.data['detail'])

    def test_login_returns_tokens_and_user(self):
        response = self.client.post(
            self.token_url, {'email': 'Existing@Example.com', 'password': self.password}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['id'], self.user.id)

    def test_login_wrong_password(self):
        response = self.client.post(
            self.token_url, {'email': self.user.email, 'password': 'wrong-password'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_blocked_user_cannot_login(self):
        self.user.block('Abuse')
        response = self.client.post(
            self.token_url, {'email': self.user.email, 'password': self.password}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_access_token_authenticates_requests(self):
        refresh = RefreshToken.for_user(self.user)
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        response = self.client.get(reverse('users:user-me'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['email'], self.user.email)

    def test_logout_blacklists_refresh_token(self):
        refresh = str(RefreshToken.for_user(self.user))
        self.client.force_authenticate(user=self.user)

        response = self.client.post(self.logout_url, {'refresh': refresh}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        # Same token again is rejected
        response = self.client.post(self.logout_url, {'refresh': refresh}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(reverse('users:token_refresh'), {'refresh': refresh}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_logout_requires_refresh_token(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.post(self.logout_url, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Refresh token is required')
        self.assertEqual(response.data['detail'], 'Refresh token is required')

    def test_logout_with_invalid_token_has_error_body(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.post(self.logout_url, {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(set(response.data), {'error', 'detail'})

    def test_blocked_user_cannot_logout(self):
        refresh = str(RefreshToken.for_user(self.user))
        self.user.block('Spam')
        self.client.force_authenticate(user=self.user)

        response = self.client.post(self.logout_url, {'refresh': refresh}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Your account has been blocked.')


class PasswordResetTests(APITestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(
            email='forgetful@example.com',
            password='Old!password9',
            first_name='Forgetful',
            last_name='User',
        )
        self.request_url = reverse('users:password_reset_request')
        self.confirm_url = reverse('users:password_reset_confirm')

    def test_request_sends_email(self):
        response = self.client.post(self.request_url, {'email': 'Forgetful@example.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['forgetful@example.com'])
        self.assertIn('uid=', mail.outbox[0].body)

    def test_request_for_unknown_email_looks_the_same(self):
        response = self.client.post(self.request_url, {'email': 'nobody@example.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(mail.outbox), 0)

    def test_confirm_sets_new_password(self):
        uid = urlsafe_base64_encode(force_bytes(self.user.pk))
        token = default_token_generator.make_token(self.user)

        response = self.client.post(
            self.confirm_url, {'uid': uid, 'token': token, 'password': 'Brand!new9pass'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('Brand!new9pass'))

        # The link cannot be reused once the password changed
        response = self.client.post(
            self.confirm_url, {'uid': uid, 'token': token, 'password': 'Other!new9pass'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_confirm_with_bad_token(self):
        uid = urlsafe_base64_encode(force_bytes(self.user.pk))
        response = self.client.post(
            self.confirm_url, {'uid': uid, 'token': 'bad-token', 'password': 'Brand!new9pass'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid or expired token')


class ProfileTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            email='profile@example.com',
            password='Old!password9',
            first_name='Pro',
            last_name='File',
        )
        self.client = APIClient()
        self.client.force_authenticate(user=self.user)
        self.me_url = reverse('users:user-me')

    def test_get_me(self):
        response = self.client.get(self.me_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['email'], 'profile@example.com')
        for field in ('id', 'first_name', 'last_name', 'phone', 'profile_image_url', 'role',
                      'created_at', 'updated_at'):
            self.assertIn(field, response.data)
        self.assertNotIn('password', response.data)

    def test_update_me(self):
        response = self.client.put(
            self.me_url, {'first_name': 'Profy', 'phone': '+1 555 123 4567'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['first_name'], 'Profy')
        self.user.refresh_from_db()
        self.assertEqual(self.user.phone, '+1 555 123 4567')
        self.assertEqual(self.user.last_name, 'File')

    def test_update_cannot_change_role(self):
        self.client.patch(self.me_url, {'role': User.Role.ADMIN}, format='json')
        self.user.refresh_from_db()
        self.assertEqual(self.user.role, User.Role.USER)

    def test_change_password(self):
        response = self.client.patch(
            self.me_url,
            {'current_password': 'Old!password9', 'new_password': 'New!password9x'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('New!password9x'))

    def test_change_password_requires_current_password(self):
        response = self.client.patch(self.me_url, {'new_password': 'New!password9x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.patch(
            self.me_url,
            {'current_password': 'not-it', 'new_password': 'New!password9x'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Current password is not correct.')

    def test_unauthenticated(self):
        response = APIClient().get(self.me_url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class UserSearchTests(APITestCase):
    def setUp(self):
        self.searcher = User.objects.create_user(
            email='searcher@example.com', password='password123',
            first_name='Sam', last_name='Searcher',
        )
        self.alice = User.objects.create_user(
            email='alice@movies.test', password='password123',
            first_name='Alice', last_name='Zimmer',
        )
        self.alina = User.objects.create_user(
            email='alina@movies.test', password='password123',
            first_name='Alina', last_name='Young',
        )
        self.bob = User.objects.create_user(
            email='bob@series.test', password='password123',
            first_name='Bob', last_name='Novak',
        )
        self.blocked = User.objects.create_user(
            email='alibaba@movies.test', password='password123',
            first_name='Ali', last_name='Blocked',
        )
        self.blocked.block()

        self.client = APIClient()
        self.client.force_authenticate(user=self.searcher)
        self.search_url = reverse('users:user-search')

    def search(self, query):
        return self.client.get(self.search_url, {'q': query})

    def test_short_query_returns_empty_list(self):
        for query in ('', 'a', ' a '):
            response = self.search(query)
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertEqual(response.data, [])

    def test_missing_query_returns_empty_list(self):
        response = self.client.get(self.search_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, [])

    def test_case_insensitive_name_match(self):
        response = self.search('ALI')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([u['id'] for u in response.data], [self.alice.id, self.alina.id])

    def test_matches_last_name_and_email(self):
        response = self.search('novak')
        self.assertEqual([u['id'] for u in response.data], [self.bob.id])

        response = self.search('series.test')
        self.assertEqual([u['id'] for u in response.data], [self.bob.id])

    def test_excludes_searcher_and_blocked_users(self):
        response = self.search('example.com')
        self.assertEqual(response.data, [])

        response = self.search('movies')
        ids = [u['id'] for u in response.data]
        self.assertNotIn(self.blocked.id, ids)
        self.assertEqual(ids, [self.alice.id, self.alina.id])

    def test_public_projection(self):
        response = self.search('bob')
        self.assertEqual(
            set(response.data[0].keys()),
            {'id', 'first_name', 'last_name', 'email', 'profile_image_url', 'created_at'},
        )

    def test_results_are_capped_and_ordered(self):
        for i in range(25):
            User.objects.create_user(
                email=f'fan{i:02d}@crowd.test', password='password123',
                first_name='Fan', last_name=f'Number{i:02d}',
            )

        response = self.search('crowd')
        self.assertEqual(len(response.data), 20)
        last_names = [u['last_name'] for u in response.data]
        self.assertEqual(last_names, sorted(last_names))
        self.assertEqual(last_names[0], 'Number00')

    def test_search_requires_authentication(self):
        response = APIClient().get(self.search_url, {'q': 'ali'})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class AdminUserTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(
            email='admin@example.com', password='password123',
            first_name='Ada', last_name='Admin', role=User.Role.ADMIN,
        )
        self.alice = User.objects.create_user(
            email='alice_admin@example.com', password='password123',
            first_name='Alice', last_name='Member',
        )
        self.bob = User.objects.create_user(
            email='bob_admin@example.com', password='password123',
            first_name='Bob', last_name='Member',
        )

        self.client = APIClient()
        self.client.force_authenticate(user=self.admin)
        self.list_url = reverse('admin-api:admin-users-list')

    def block_url(self, user):
        return reverse('admin-api:admin-users-block', args=[user.id])

    def unblock_url(self, user):
        return reverse('admin-api:admin-users-unblock', args=[user.id])

    def test_list_users_with_counts(self):
        Friendship.objects.create(requester=self.alice, recipient=self.bob)
        Friendship.objects.create(requester=self.admin, recipient=self.alice)
        media = Media.objects.create(external_id='tmdb_movie_603', title='The Matrix', type=Media.Type.MOVIE)
        MediaEntry.objects.create(user=self.alice, media=media)

        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 3)

        by_id = {item['id']: item for item in response.data}
        self.assertEqual(by_id[self.alice.id]['friendships_count'], 2)
        self.assertEqual(by_id[self.alice.id]['entries_count'], 1)
        self.assertEqual(by_id[self.bob.id]['friendships_count'], 1)
        self.assertEqual(by_id[self.bob.id]['entries_count'], 0)

        # Newest first
        self.assertEqual(response.data[0]['id'], self.bob.id)

    def test_non_admin_is_forbidden(self):
        self.client.force_authenticate(user=self.alice)
        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Admin access required.')

    def test_staff_counts_as_admin(self):
        self.alice.is_staff = True
        self.alice.save()
        self.client.force_authenticate(user=self.alice)
        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_create_user(self):
        data = {
            'email': 'Created@Example.com',
            'first_name': 'Created',
            'last_name': 'ByAdmin',
            'password': 'secret1',
            'role': User.Role.ADMIN,
        }
        response = self.client.post(self.list_url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertNotIn('password', response.data)

        user = User.objects.get(email='created@example.com')
        self.assertTrue(user.is_admin)
        self.assertTrue(user.check_password('secret1'))

    def test_create_user_defaults_to_user_role(self):
        data = {
            'email': 'plain@example.com',
            'first_name': 'Plain',
            'last_name': 'User',
            'password': 'secret1',
        }
        response = self.client.post(self.list_url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(User.objects.get(email='plain@example.com').role, User.Role.USER)

    def test_create_user_validation(self):
        base = {
            'email': 'valid@example.com',
            'first_name': 'Valid',
            'last_name': 'User',
            'password': 'secret1',
        }
        for field, value in (('email', 'not-an-email'), ('password', '123'), ('role', 'OWNER')):
            data = dict(base, **{field: value})
            response = self.client.post(self.list_url, data, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, field)
            self.assertIn(field, response.data['detail'])

        data = dict(base, email='ALICE_ADMIN@example.com')
        response = self.client.post(self.list_url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'User with this email already exists')

    def test_block_and_unblock_user(self):
        response = self.client.post(self.block_url(self.alice), {'reason': 'Spam'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_blocked'])
        self.assertEqual(response.data['block_reason'], 'Spam')

        self.alice.refresh_from_db()
        self.assertTrue(self.alice.is_blocked)

        response = self.client.post(self.unblock_url(self.alice), format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_blocked'])

        self.alice.refresh_from_db()
        self.assertFalse(self.alice.is_blocked)

    def test_admin_cannot_block_self(self):
        response = self.client.post(self.block_url(self.admin), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.admin.refresh_from_db()
        self.assertFalse(self.admin.is_blocked)

    def test_blocked_user_is_locked_out_of_the_api(self):
        self.client.post(self.block_url(self.alice), {'reason': 'Spam'}, format='json')
        self.alice.refresh_from_db()

        client = APIClient()
        client.force_authenticate(user=self.alice)
        response = client.get(reverse('users:user-me'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class BackOfficeSiteTests(APITestCase):
    def setUp(self):
        self.staff = User.objects.create_superuser(
            email='staff@example.com', password='password123',
            first_name='Staff', last_name='Member',
        )
        self.index_url = reverse('cinetrack_admin:index')

    def test_index_lands_on_user_list(self):
        self.client.force_login(self.staff)
        response = self.client.get(self.index_url)
        self.assertRedirects(
            response, reverse('cinetrack_admin:users_user_changelist'), fetch_redirect_response=False,
        )

    def test_blocked_staff_is_sent_to_login(self):
        self.staff.block('Compromised account')
        self.client.force_login(self.staff)
        response = self.client.get(self.index_url)
        self.assertEqual(response.status_code, status.HTTP_302_FOUND)
        self.assertTrue(response['Location'].startswith(reverse('cinetrack_admin:login')))
