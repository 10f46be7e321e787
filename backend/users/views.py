from rest_framework import generics, permissions

from .serializers import UserSerializer


class UserDetailView(generics.RetrieveAPIView):
    """
    The authenticated caller, including the role and organization the
    route endpoints scope on.
    """
    serializer_class = UserSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_object(self):
        return self.request.user
