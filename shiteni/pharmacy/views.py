import logging
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.db.models import Sum, Count, Max, Q, DecimalField
from django.db.models.functions import TruncDate
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from shiteni.core.cache_utils import get_cached_dashboard, cache_dashboard
from shiteni.core.roles import check_pharmacy_access
from shiteni.core.utils import create_audit_log, daily_number, paginate
from shiteni.messaging.models import Message
from shiteni.subscriptions.gating import vendor_view
from .filters import MedicineFilter, PharmacyOrderFilter, PatientFilter, InsuranceClaimFilter, ComplianceRecordFilter
from .models import (
    Medicine, Patient, Prescription, PharmacyOrder, InsuranceClaim, ComplianceRecord,
)
from .serializers import (
    MedicineSerializer, PatientSerializer, PrescriptionSerializer, PharmacyOrderSerializer,
    InsuranceClaimSerializer, ComplianceRecordSerializer,
)
from .services import DispenseError, dispense_prescription, order_totals

logger = logging.getLogger('shiteni.pharmacy')

User = get_user_model()

MONEY = DecimalField(max_digits=14, decimal_places=2)


def _allowed(request, group):
    if request.user.role == 'super_admin':
        return True
    return check_pharmacy_access(request.user.role, request.user.service_type, group)


def _forbidden():
    return Response({'error': 'Insufficient permissions'}, status=status.HTTP_403_FORBIDDEN)


# Medicines

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@vendor_view('pharmacy', pharmacy_group='ORDER_MANAGEMENT')
def medicine_list_create(request):
    vendor = request.vendor
    if request.method == 'GET':
        queryset = MedicineFilter(request.query_params, queryset=Medicine.objects.filter(vendor=vendor)).qs
        items, pagination = paginate(queryset, request, default_limit=20)
        return Response({'medicines': MedicineSerializer(items, many=True).data, 'pagination': pagination})

    if not _allowed(request, 'MEDICINE_MANAGEMENT'):
        return _forbidden()
    serializer = MedicineSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    medicine = serializer.save(vendor=vendor)
    create_audit_log(request, action='create', model_name='Medicine', object_id=medicine.id,
                     object_name=str(medicine), object_reference=medicine.batch_number)
    return Response(MedicineSerializer(medicine).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@vendor_view('pharmacy', pharmacy_group='ORDER_MANAGEMENT')
def medicine_detail(request, pk):
    medicine = get_object_or_404(Medicine, pk=pk, vendor=request.vendor)

    if request.method == 'GET':
        return Response(MedicineSerializer(medicine).data)
    if not _allowed(request, 'MEDICINE_MANAGEMENT'):
        return _forbidden()

    if request.method in ('PUT', 'PATCH'):
        serializer = MedicineSerializer(medicine, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_audit_log(request, action='delete', model_name='Medicine', object_id=medicine.id,
                         object_name=str(medicine))
        medicine.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Prescriptions

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@vendor_view('pharmacy', pharmacy_group='MEDICINE_MANAGEMENT')
def prescription_list_create(request):
    vendor = request.vendor
    if request.method == 'GET':
        prescriptions = Prescription.objects.filter(vendor=vendor).select_related('dispensed_by')
        prescription_status = request.query_params.get('status')
        if prescription_status and prescription_status != 'all':
            prescriptions = prescriptions.filter(status=prescription_status)
        search = request.query_params.get('search')
        if search:
            prescriptions = prescriptions.filter(
                Q(prescription_number__icontains=search) | Q(patient_name__icontains=search) |
                Q(doctor_name__icontains=search)
            )
        items, pagination = paginate(prescriptions, request, default_limit=20)
        return Response({'prescriptions': PrescriptionSerializer(items, many=True).data, 'pagination': pagination})

    serializer = PrescriptionSerializer(data=request.data, context={'vendor': vendor})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    prescription = serializer.save(
        vendor=vendor,
        prescription_number=daily_number(Prescription, vendor, 'RX', 'prescription_number'),
    )
    create_audit_log(request, action='create', model_name='Prescription', object_id=prescription.id,
                     object_reference=prescription.prescription_number)
    return Response(PrescriptionSerializer(prescription).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@vendor_view('pharmacy', pharmacy_group='MEDICINE_MANAGEMENT')
def prescription_dispense(request, pk):
    prescription = get_object_or_404(Prescription, pk=pk, vendor=request.vendor)
    try:
        prescription = dispense_prescription(prescription, request.user)
    except DispenseError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request, action='dispense', model_name='Prescription', object_id=prescription.id,
                     object_reference=prescription.prescription_number,
                     changes={'total_amount': str(prescription.total_amount)})
    return Response({'success': True, 'prescription': PrescriptionSerializer(prescription).data})


# Orders

def _order_customer(email):
    if not email:
        return None
    return User.objects.filter(email=email.strip().lower(), role='customer').first()


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@vendor_view('pharmacy', pharmacy_group='ORDER_MANAGEMENT')
def order_list_create(request):
    vendor = request.vendor
    if request.method == 'GET':
        queryset = PharmacyOrderFilter(request.query_params,
                                       queryset=PharmacyOrder.objects.filter(vendor=vendor)).qs
        items, pagination = paginate(queryset, request)
        return Response({'orders': PharmacyOrderSerializer(items, many=True).data, 'pagination': pagination})

    serializer = PharmacyOrderSerializer(data=request.data, context={'vendor': vendor})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    subtotal, total = order_totals(data['items'], data.get('tax'), data.get('shipping_fee'))
    order = serializer.save(
        vendor=vendor,
        order_number=daily_number(PharmacyOrder, vendor, 'PH', 'order_number'),
        customer=_order_customer(data.get('customer_email')),
        subtotal=subtotal,
        total_amount=total,
    )
    order.stamp_status()
    order.save()
    create_audit_log(request, action='order_create', model_name='PharmacyOrder', object_id=order.id,
                     object_reference=order.order_number, changes={'total': str(order.total_amount)})
    return Response({'success': True, 'order': PharmacyOrderSerializer(order).data,
                     'message': 'Order created successfully'}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@vendor_view('pharmacy', pharmacy_group='ORDER_MANAGEMENT')
def order_detail(request, pk):
    """Retrieve, update (status stamps its timestamp) or delete an order"""
    order = get_object_or_404(PharmacyOrder, pk=pk, vendor=request.vendor)

    if request.method == 'GET':
        return Response({'success': True, 'order': PharmacyOrderSerializer(order).data})
    elif request.method in ('PUT', 'PATCH'):
        previous_status = order.status
        serializer = PharmacyOrderSerializer(order, data=request.data, partial=True,
                                             context={'vendor': request.vendor})
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        order = serializer.save()
        if 'items' in serializer.validated_data or 'tax' in serializer.validated_data \
                or 'shipping_fee' in serializer.validated_data:
            order.subtotal, order.total_amount = order_totals(order.items, order.tax, order.shipping_fee)
        if order.status != previous_status:
            order.stamp_status()
            create_audit_log(request, action='status_change', model_name='PharmacyOrder', object_id=order.id,
                             object_reference=order.order_number,
                             changes={'status': [previous_status, order.status]})
        order.save()
        return Response({'success': True, 'order': PharmacyOrderSerializer(order).data,
                         'message': 'Order updated successfully'})
    else:  # DELETE
        create_audit_log(request, action='delete', model_name='PharmacyOrder', object_id=order.id,
                         object_reference=order.order_number)
        order.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Patients

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@vendor_view('pharmacy', pharmacy_group='PATIENT_MANAGEMENT')
def patient_list_create(request):
    vendor = request.vendor
    if request.method == 'GET':
        queryset = PatientFilter(request.query_params, queryset=Patient.objects.filter(vendor=vendor)).qs
        items, pagination = paginate(queryset, request)
        return Response({'patients': PatientSerializer(items, many=True).data, 'pagination': pagination})

    serializer = PatientSerializer(data=request.data, context={'vendor': vendor})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    patient = serializer.save(vendor=vendor, patient_id=Patient.next_patient_id())
    create_audit_log(request, action='create', model_name='Patient', object_id=patient.id,
                     object_name=patient.full_name, object_reference=patient.patient_id)
    return Response(PatientSerializer(patient).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@vendor_view('pharmacy', pharmacy_group='PATIENT_MANAGEMENT')
def patient_detail(request, pk):
    patient = get_object_or_404(Patient, pk=pk, vendor=request.vendor)

    if request.method == 'GET':
        data = PatientSerializer(patient).data
        data['prescriptions'] = PrescriptionSerializer(patient.prescriptions.all()[:10], many=True).data
        return Response(data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = PatientSerializer(patient, data=request.data, partial=True, context={'vendor': request.vendor})
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        patient.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Insurance

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@vendor_view('pharmacy', pharmacy_group='INSURANCE_MANAGEMENT')
def claim_list_create(request):
    vendor = request.vendor
    if request.method == 'GET':
        claims = InsuranceClaim.objects.filter(vendor=vendor)
        queryset = InsuranceClaimFilter(request.query_params, queryset=claims).qs
        totals = claims.aggregate(
            claimed=Sum('claim_amount', output_field=MONEY),
            approved=Sum('approved_amount', filter=Q(status='approved'), output_field=MONEY),
        )
        items, pagination = paginate(queryset, request, default_limit=20)
        return Response({
            'claims': InsuranceClaimSerializer(items, many=True).data,
            'summary': {
                'total': claims.count(),
                'pending': claims.filter(status='pending').count(),
                'processing': claims.filter(status='processing').count(),
                'approved': claims.filter(status='approved').count(),
                'rejected': claims.filter(status='rejected').count(),
                'total_claimed': float(totals['claimed'] or 0),
                'total_approved': float(totals['approved'] or 0),
            },
            'pagination': pagination,
        })

    serializer = InsuranceClaimSerializer(data=request.data, context={'vendor': vendor})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    claim = serializer.save(vendor=vendor, claim_number=daily_number(InsuranceClaim, vendor, 'CLM', 'claim_number'))
    create_audit_log(request, action='create', model_name='InsuranceClaim', object_id=claim.id,
                     object_reference=claim.claim_number, changes={'claim_amount': str(claim.claim_amount)})
    return Response(InsuranceClaimSerializer(claim).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@vendor_view('pharmacy', pharmacy_group='INSURANCE_MANAGEMENT')
def claim_detail(request, pk):
    claim = get_object_or_404(InsuranceClaim, pk=pk, vendor=request.vendor)

    if request.method == 'GET':
        return Response(InsuranceClaimSerializer(claim).data)
    elif request.method in ('PUT', 'PATCH'):
        previous_status = claim.status
        serializer = InsuranceClaimSerializer(claim, data=request.data, partial=request.method == 'PATCH',
                                              context={'vendor': request.vendor})
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        claim = serializer.save()
        if claim.status != previous_status:
            create_audit_log(request, action='status_change', model_name='InsuranceClaim', object_id=claim.id,
                             object_reference=claim.claim_number, changes={'status': [previous_status, claim.status]})
        return Response(InsuranceClaimSerializer(claim).data)
    else:  # DELETE
        claim.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Compliance

def compliance_summary(records):
    today = timezone.localdate()
    overdue = Q(status='overdue') | Q(status='pending', due_date__lt=today)
    return {
        'total': records.count(),
        'pending': records.filter(status='pending', due_date__gte=today).count(),
        'completed': records.filter(status='completed').count(),
        'overdue': records.filter(overdue).count(),
        'cancelled': records.filter(status='cancelled').count(),
        'critical': records.filter(priority='critical').exclude(status__in=['completed', 'cancelled']).count(),
        'due_this_month': records.filter(
            status='pending', due_date__gte=today, due_date__lte=today + timedelta(days=30)
        ).count(),
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@vendor_view('pharmacy', pharmacy_group='COMPLIANCE_MANAGEMENT')
def compliance_list_create(request):
    vendor = request.vendor
    if request.method == 'GET':
        records = ComplianceRecord.objects.filter(vendor=vendor)
        queryset = ComplianceRecordFilter(request.query_params, queryset=records).qs
        items, pagination = paginate(queryset, request, default_limit=50)
        return Response({
            'records': ComplianceRecordSerializer(items, many=True).data,
            'summary': compliance_summary(records),
            'pagination': pagination,
        })

    serializer = ComplianceRecordSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    record = serializer.save(vendor=vendor)
    create_audit_log(request, action='create', model_name='ComplianceRecord', object_id=record.id,
                     object_name=record.title, object_reference=record.record_id)
    return Response(ComplianceRecordSerializer(record).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@vendor_view('pharmacy', pharmacy_group='COMPLIANCE_MANAGEMENT')
def compliance_detail(request, pk):
    record = get_object_or_404(ComplianceRecord, pk=pk, vendor=request.vendor)

    if request.method == 'GET':
        return Response(ComplianceRecordSerializer(record).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ComplianceRecordSerializer(record, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        record.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Dashboard and customers

def build_pharmacy_dashboard(vendor):
    today = timezone.localdate()
    medicines = Medicine.objects.filter(vendor=vendor)
    orders = PharmacyOrder.objects.filter(vendor=vendor)
    earned = orders.filter(status__in=PharmacyOrder.REVENUE_STATUSES)
    revenue = earned.aggregate(
        total=Sum('total_amount', output_field=MONEY),
        today=Sum('total_amount', filter=Q(created_at__date=today), output_field=MONEY),
        yesterday=Sum('total_amount', filter=Q(created_at__date=today - timedelta(days=1)), output_field=MONEY),
    )
    today_revenue = float(revenue['today'] or 0)
    yesterday_revenue = float(revenue['yesterday'] or 0)
    growth = ((today_revenue - yesterday_revenue) / yesterday_revenue * 100) if yesterday_revenue else 0

    daily = {
        row['day']: float(row['revenue'] or 0)
        for row in earned.filter(created_at__date__gte=today - timedelta(days=6))
        .annotate(day=TruncDate('created_at')).values('day').annotate(revenue=Sum('total_amount', output_field=MONEY))
    }
    revenue_trend = []
    for offset in range(6, -1, -1):
        day = today - timedelta(days=offset)
        revenue_trend.append({'label': day.strftime('%a'), 'date': day.isoformat(), 'revenue': daily.get(day, 0.0)})

    return {
        'stats': {
            'total_medicines': medicines.count(),
            'active_medicines': medicines.filter(status='active').count(),
            'low_stock_medicines': medicines.filter(status='low_stock').count(),
            'out_of_stock_medicines': medicines.filter(stock__lte=0).count(),
            'expired_medicines': medicines.filter(expiry_date__lt=today).count(),
            'expiring_soon': medicines.filter(expiry_date__gte=today,
                                              expiry_date__lte=today + timedelta(days=30)).count(),
            'total_orders': orders.count(),
            'today_orders': orders.filter(created_at__date=today).count(),
            'pending_orders': orders.filter(status='pending').count(),
            'total_revenue': float(revenue['total'] or 0),
            'today_revenue': today_revenue,
            'revenue_growth': round(growth, 1),
            'pending_prescriptions': Prescription.objects.filter(vendor=vendor, status='pending').count(),
            'total_patients': Patient.objects.filter(vendor=vendor).count(),
            'new_patients_this_week': Patient.objects.filter(
                vendor=vendor, created_at__date__gte=today - timedelta(days=7)).count(),
        },
        'charts': {
            'order_status': list(orders.values('status').annotate(count=Count('id')).order_by('status')),
            'medicine_categories': list(
                medicines.values('category').annotate(count=Count('id')).order_by('-count')[:6]
            ),
            'revenue_trend': revenue_trend,
        },
        'recent_orders': PharmacyOrderSerializer(orders[:5], many=True).data,
        'expiring_medicines': MedicineSerializer(
            medicines.filter(expiry_date__gte=today, expiry_date__lte=today + timedelta(days=30))
            .order_by('expiry_date')[:5], many=True).data,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@vendor_view('pharmacy', pharmacy_group='ORDER_MANAGEMENT')
def dashboard(request):
    cached, cache_key = get_cached_dashboard('pharmacy', request.vendor.id)
    if cached is not None:
        return Response(cached)
    data = build_pharmacy_dashboard(request.vendor)
    cache_dashboard(cache_key, data)
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@vendor_view('pharmacy', pharmacy_group='INBOX_ACCESS')
def customers(request):
    """Customers who ordered from (confirmed onwards) or wrote to the pharmacy"""
    vendor = request.vendor
    search = (request.query_params.get('search') or '').strip().lower()

    rows = {}
    orders = PharmacyOrder.objects.filter(vendor=vendor, status__in=PharmacyOrder.REVENUE_STATUSES)
    for row in orders.exclude(customer_email='').values('customer_email').annotate(
            total_orders=Count('id'), total_spent=Sum('total_amount', output_field=MONEY),
            last_order_date=Max('order_date'), name=Max('customer_name'), phone=Max('customer_phone')):
        rows[row['customer_email'].lower()] = {
            'name': row['name'],
            'email': row['customer_email'].lower(),
            'phone': row['phone'],
            'total_orders': row['total_orders'],
            'total_spent': float(row['total_spent'] or 0),
            'last_order_date': row['last_order_date'],
            'has_messages': False,
        }

    senders = Message.objects.filter(conversation_id=str(vendor.id), sender_role='customer')
    for row in senders.values('sender_email').annotate(name=Max('sender_name'), last=Max('created_at')):
        email = row['sender_email'].lower()
        entry = rows.setdefault(email, {
            'name': row['name'],
            'email': email,
            'phone': '',
            'total_orders': 0,
            'total_spent': 0.0,
            'last_order_date': None,
        })
        entry['has_messages'] = True

    result = sorted(rows.values(), key=lambda r: (r['total_spent'], r['email']), reverse=True)
    if search:
        result = [r for r in result if search in (r['name'] or '').lower() or search in r['email']
                  or search in (r['phone'] or '').lower()]

    try:
        page = max(int(request.query_params.get('page', 1)), 1)
        limit = min(max(int(request.query_params.get('limit', 10)), 1), 100)
    except (TypeError, ValueError):
        page, limit = 1, 10
    start = (page - 1) * limit
    return Response({
        'customers': result[start:start + limit],
        'pagination': {
            'page': page,
            'limit': limit,
            'total': len(result),
            'pages': -(-len(result) // limit),
        },
    })
