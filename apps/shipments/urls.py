from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'shipments'

router = DefaultRouter()
router.register(r'shipments', views.ShipmentViewSet, basename='shipment')
router.register(r'payments', views.PaymentViewSet, basename='payment')

urlpatterns = [
    # GET    /api/shipments/                       - List shipments
    # GET    /api/shipments/{id}/                  - Shipment details
    # GET    /api/shipments/{id}/payment-snapshot/ - Cost and payment snapshot
    # GET    /api/shipments/{id}/payments/         - Payments of a shipment
    # GET    /api/payments/                        - List payments
    # POST   /api/payments/                        - Record a payment
    # GET    /api/payments/{id}/                   - Payment details
    path('', include(router.urls)),
]
