from rest_framework.permissions import BasePermission


class IsGroupMemberForChannel(BasePermission):
    """
    Permission: only members of a group may subscribe to its channel.
    """

    message = 'You must be a member of this group to receive its updates.'

    def has_object_permission(self, request, view, obj):
        # obj is a Group instance
        return obj.has_member(request.user)
