import pytest
from django.urls import reverse
from rest_framework import status
from apps.groups.models import Group, GroupRole


# =============================================================================
# Group CRUD Tests
# =============================================================================

@pytest.mark.django_db
class TestGroupList:
    """Tests for GET /api/groups/"""

    def test_list_groups_returns_user_groups(self, authenticated_client, group):
        """List returns only groups where user is a member."""
        url = reverse('groups:group-list')
        response = authenticated_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data['results']) == 1
        assert response.data['results'][0]['name'] == group.name

    def test_list_groups_excludes_non_member_groups(self, other_client, group):
        url = reverse('groups:group-list')
        response = other_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data['results']) == 0

    def test_list_groups_unauthenticated(self, api_client):
        url = reverse('groups:group-list')
        response = api_client.get(url)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestGroupCreate:
    """Tests for POST /api/groups/"""

    def test_create_group(self, authenticated_client, group_owner):
        url = reverse('groups:group-list')
        data = {
            'name': 'New Flat',
            'description': 'Groceries for the new flat',
        }
        response = authenticated_client.post(url, data)

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['user_role'] == GroupRole.OWNER
        assert response.data['member_count'] == 1

        group = Group.objects.get(name='New Flat')
        assert group.owner == group_owner
        assert group.get_user_role(group_owner) == GroupRole.OWNER

    def test_create_group_requires_name(self, authenticated_client):
        url = reverse('groups:group-list')
        response = authenticated_client.post(url, {'description': 'No name'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_create_group_unauthenticated(self, api_client):
        url = reverse('groups:group-list')
        response = api_client.post(url, {'name': 'Unauthorized Group'})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestGroupRetrieve:
    """Tests for GET /api/groups/{id}/"""

    def test_retrieve_group_as_member(self, authenticated_client, group):
        url = reverse('groups:group-detail', args=[group.id])
        response = authenticated_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['name'] == group.name
        assert 'invite_code' in response.data

    def test_retrieve_group_as_non_member(self, other_client, group):
        """Non-members cannot see the group at all."""
        url = reverse('groups:group-detail', args=[group.id])
        response = other_client.get(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND


# =============================================================================
# Membership Tests
# =============================================================================

@pytest.mark.django_db
class TestGroupMembers:
    """Tests for GET /api/groups/{id}/members/"""

    def test_members_in_join_order(self, authenticated_client, group_with_members, group_owner, member_user):
        url = reverse('groups:group-members', args=[group_with_members.id])
        response = authenticated_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert [m['user']['email'] for m in response.data] == [
            group_owner.email,
            member_user.email,
        ]
        assert response.data[0]['role'] == GroupRole.OWNER

    def test_members_as_non_member(self, other_client, group):
        url = reverse('groups:group-members', args=[group.id])
        response = other_client.get(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestJoinGroup:
    """Tests for POST /api/groups/{id}/join/"""

    def test_join_with_valid_code(self, member_client, group, member_user):
        url = reverse('groups:group-join', args=[group.id])
        response = member_client.post(url, {'invite_code': group.invite_code})

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['role'] == GroupRole.MEMBER
        assert group.has_member(member_user)

    def test_join_with_invalid_code(self, member_client, group, member_user):
        url = reverse('groups:group-join', args=[group.id])
        response = member_client.post(url, {'invite_code': 'not-the-code'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert not group.has_member(member_user)

    def test_join_twice(self, member_client, group_with_members):
        url = reverse('groups:group-join', args=[group_with_members.id])
        response = member_client.post(url, {'invite_code': group_with_members.invite_code})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_join_missing_code(self, member_client, group):
        url = reverse('groups:group-join', args=[group.id])
        response = member_client.post(url, {})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_join_unknown_group(self, member_client):
        url = reverse('groups:group-join', args=['00000000-0000-0000-0000-000000000000'])
        response = member_client.post(url, {'invite_code': 'whatever'})

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestLeaveGroup:
    """Tests for POST /api/groups/{id}/leave/"""

    def test_member_can_leave(self, member_client, group_with_members, member_user):
        url = reverse('groups:group-leave', args=[group_with_members.id])
        response = member_client.post(url)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not group_with_members.has_member(member_user)

    def test_owner_cannot_leave(self, authenticated_client, group):
        url = reverse('groups:group-leave', args=[group.id])
        response = authenticated_client.post(url)

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_non_member_cannot_leave(self, other_client, group):
        url = reverse('groups:group-leave', args=[group.id])
        response = other_client.post(url)

        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
class TestMyGroups:
    """Tests for GET /api/groups/my/"""

    def test_my_groups(self, member_client, group_with_members):
        url = reverse('groups:my-groups')
        response = member_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert [g['id'] for g in response.data] == [str(group_with_members.id)]
