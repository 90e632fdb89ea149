from django.urls import path
from . import views

urlpatterns = [
    path('pharmacy/medicines/', views.medicine_list_create, name='pharmacy-medicine-list'),
    path('pharmacy/medicines/<int:pk>/', views.medicine_detail, name='pharmacy-medicine-detail'),
    path('pharmacy/prescriptions/', views.prescription_list_create, name='pharmacy-prescription-list'),
    path('pharmacy/prescriptions/<int:pk>/dispense/', views.prescription_dispense, name='pharmacy-prescription-dispense'),
    path('pharmacy/orders/', views.order_list_create, name='pharmacy-order-list'),
    path('pharmacy/orders/<int:pk>/', views.order_detail, name='pharmacy-order-detail'),
    path('pharmacy/patients/', views.patient_list_create, name='pharmacy-patient-list'),
    path('pharmacy/patients/<int:pk>/', views.patient_detail, name='pharmacy-patient-detail'),
    path('pharmacy/insurance/claims/', views.claim_list_create, name='pharmacy-claim-list'),
    path('pharmacy/insurance/claims/<int:pk>/', views.claim_detail, name='pharmacy-claim-detail'),
    path('pharmacy/compliance/records/', views.compliance_list_create, name='pharmacy-compliance-list'),
    path('pharmacy/compliance/records/<int:pk>/', views.compliance_detail, name='pharmacy-compliance-detail'),
    path('pharmacy/dashboard/', views.dashboard, name='pharmacy-dashboard'),
    path('pharmacy/customers/', views.customers, name='pharmacy-customers'),
]
