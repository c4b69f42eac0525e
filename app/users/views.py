"""
Views for the user API.
"""

from rest_framework import generics
from rest_framework.authentication import TokenAuthentication
from rest_framework.permissions import IsAuthenticated

from users.serializers import UserProfileSerializer


class ManageUserView(generics.RetrieveAPIView):
    """Return the authenticated user's profile."""

    serializer_class = UserProfileSerializer
    authentication_classes = [TokenAuthentication]
    permission_classes = [IsAuthenticated]

    def get_object(self):
        return self.request.user
