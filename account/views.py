from rest_framework import permissions
from rest_framework.generics import ListCreateAPIView, RetrieveUpdateAPIView
from rest_framework.response import Response
from rest_framework.views import APIView
from django.contrib.auth import get_user_model

from .permissions import IsStaffRole
from .serializers import UserSerializer

User = get_user_model()

class MeView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return Response({"user": UserSerializer(request.user).data})
class UserListCreateView(ListCreateAPIView):
    permission_classes = [IsStaffRole]
    serializer_class = UserSerializer

    def get_queryset(self):
        role = self.request.query_params.get("role") or User.Role.KURIR
        return User.objects.filter(role=role).order_by("username")
class UserDetailView(RetrieveUpdateAPIView):
    permission_classes = [IsStaffRole]
    queryset = User.objects.all()
    serializer_class = UserSerializer
