from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView

from . import views

app_name = 'accounts'

urlpatterns = [
    # Authentication
    path('token/', TokenObtainPairView.as_view(), name='token-obtain'),

    # User profile
    path('user/', views.get_current_user, name='current-user'),
]
