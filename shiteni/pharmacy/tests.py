"""
Test suite for the pharmacy module
Tests: medicine status rules, role groups, dispensing, orders, patients, insurance, compliance
"""
from datetime import timedelta
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from shiteni.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from shiteni.messaging.models import Message
from .models import Medicine, Prescription, PharmacyOrder, InsuranceClaim, ComplianceRecord


class PharmacyTestCase(TestCase):

    def setUp(self):
        cache.clear()
        self.vendor = TestDataFactory.create_subscribed_vendor('pharmacy')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.vendor)


class MedicineTests(PharmacyTestCase):

    def test_status_follows_stock_and_expiry(self):
        self.assertEqual(TestDataFactory.create_medicine(self.vendor).status, 'active')
        self.assertEqual(TestDataFactory.create_medicine(self.vendor, stock=5).status, 'low_stock')
        self.assertEqual(TestDataFactory.create_medicine(self.vendor, expiry_days=-1).status, 'expired')

    def test_restock_resets_low_stock(self):
        medicine = TestDataFactory.create_medicine(self.vendor, stock=3)
        medicine.stock = 50
        medicine.save()
        self.assertEqual(medicine.status, 'active')

    def test_inactive_medicine_stays_inactive(self):
        medicine = TestDataFactory.create_medicine(self.vendor)
        medicine.status = 'inactive'
        medicine.save()
        medicine.refresh_from_db()
        self.assertEqual(medicine.status, 'inactive')

    def test_create_and_filter(self):
        data = {
            'name': 'Amoxicillin', 'generic_name': 'Amoxicillin', 'category': 'antibiotics', 'form': 'capsule',
            'strength': '250mg', 'price': '45.00', 'stock': 200, 'min_stock': 20,
            'expiry_date': (timezone.localdate() + timedelta(days=400)).isoformat(),
        }
        response = self.client.post('/api/v1/pharmacy/medicines/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        TestDataFactory.create_medicine(self.vendor, name='Panadol', category='painkillers')
        response = self.client.get('/api/v1/pharmacy/medicines/?category=antibiotics')
        self.assertEqual([m['name'] for m in response.data['medicines']], ['Amoxicillin'])
        response = self.client.get('/api/v1/pharmacy/medicines/?search=pana')
        self.assertEqual(response.data['pagination']['total'], 1)

    def test_expiring_within_filter(self):
        TestDataFactory.create_medicine(self.vendor, name='Soon', expiry_days=10)
        TestDataFactory.create_medicine(self.vendor, name='Later', expiry_days=200)
        response = self.client.get('/api/v1/pharmacy/medicines/?expiring_within=30')
        self.assertEqual([m['name'] for m in response.data['medicines']], ['Soon'])

    def test_cashier_reads_but_cannot_write(self):
        self.client.authenticate_user(TestDataFactory.create_staff(self.vendor, 'cashier'))
        self.assertEqual(self.client.get('/api/v1/pharmacy/medicines/').status_code, status.HTTP_200_OK)
        response = self.client.post('/api/v1/pharmacy/medicines/', {'name': 'X'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_technician_writes_medicines(self):
        medicine = TestDataFactory.create_medicine(self.vendor)
        self.client.authenticate_user(TestDataFactory.create_staff(self.vendor, 'technician'))
        response = self.client.patch(f'/api/v1/pharmacy/medicines/{medicine.id}/', {'stock': 4}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'low_stock')


class PrescriptionTests(PharmacyTestCase):

    def test_create_prescription_numbers(self):
        medicine = TestDataFactory.create_medicine(self.vendor)
        data = {
            'patient_name': 'Bwalya Mulenga', 'doctor_name': 'Dr. Zulu',
            'medicines': [{'medicine': medicine.id, 'name': medicine.name, 'quantity': 2}],
        }
        response = self.client.post('/api/v1/pharmacy/prescriptions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        stamp = timezone.localdate().strftime('%y%m%d')
        self.assertEqual(response.data['prescription_number'], f'RX{stamp}001')
        self.assertEqual(response.data['status'], 'pending')

    def test_prescription_rejects_other_vendor_medicine(self):
        other = TestDataFactory.create_vendor('pharmacy')
        medicine = TestDataFactory.create_medicine(other)
        data = {'patient_name': 'A', 'doctor_name': 'B',
                'medicines': [{'medicine': medicine.id, 'name': medicine.name, 'quantity': 1}]}
        response = self.client.post('/api/v1/pharmacy/prescriptions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_prescription_rejects_non_numeric_medicine_id(self):
        data = {'patient_name': 'A', 'doctor_name': 'B', 'medicines': [{'medicine': 'abc', 'name': 'Amoxil'}]}
        response = self.client.post('/api/v1/pharmacy/prescriptions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Medicine id must be a number', response.data['medicines'])

    def test_prescription_stores_medicine_id_as_number(self):
        medicine = TestDataFactory.create_medicine(self.vendor)
        data = {'patient_name': 'A', 'doctor_name': 'B',
                'medicines': [{'medicine': str(medicine.id), 'name': medicine.name, 'quantity': '2'}]}
        response = self.client.post('/api/v1/pharmacy/prescriptions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        line = Prescription.objects.get(pk=response.data['id']).medicines[0]
        self.assertEqual(line['medicine'], medicine.id)
        self.assertEqual(line['quantity'], 2)

    def test_dispense_rejects_malformed_medicine_line(self):
        prescription = TestDataFactory.create_prescription(self.vendor)
        prescription.medicines = [{'medicine': 'abc', 'name': 'Amoxil', 'quantity': 1}]
        prescription.save()
        response = self.client.post(f'/api/v1/pharmacy/prescriptions/{prescription.id}/dispense/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid medicine line: Amoxil')

    def test_dispense_decrements_stock(self):
        medicine = TestDataFactory.create_medicine(self.vendor, stock=100, price=Decimal('10.00'))
        prescription = TestDataFactory.create_prescription(self.vendor, medicine, quantity=4)
        response = self.client.post(f'/api/v1/pharmacy/prescriptions/{prescription.id}/dispense/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        prescription.refresh_from_db()
        medicine.refresh_from_db()
        self.assertEqual(prescription.status, 'dispensed')
        self.assertEqual(prescription.dispensed_by, self.vendor)
        self.assertIsNotNone(prescription.dispensed_date)
        self.assertEqual(prescription.total_amount, Decimal('40.00'))
        self.assertEqual(medicine.stock, 96)

    def test_dispense_twice(self):
        prescription = TestDataFactory.create_prescription(self.vendor)
        self.client.post(f'/api/v1/pharmacy/prescriptions/{prescription.id}/dispense/')
        response = self.client.post(f'/api/v1/pharmacy/prescriptions/{prescription.id}/dispense/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Prescription already dispensed')

    def test_dispense_expired(self):
        prescription = TestDataFactory.create_prescription(
            self.vendor, expiry_date=timezone.localdate() - timedelta(days=1))
        response = self.client.post(f'/api/v1/pharmacy/prescriptions/{prescription.id}/dispense/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Prescription has expired')
        prescription.refresh_from_db()
        self.assertEqual(prescription.status, 'expired')

    def test_dispense_insufficient_stock_leaves_stock(self):
        medicine = TestDataFactory.create_medicine(self.vendor, stock=3, min_stock=1)
        prescription = TestDataFactory.create_prescription(self.vendor, medicine, quantity=5)
        response = self.client.post(f'/api/v1/pharmacy/prescriptions/{prescription.id}/dispense/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        medicine.refresh_from_db()
        self.assertEqual(medicine.stock, 3)
        self.assertEqual(Prescription.objects.get(pk=prescription.id).status, 'pending')

    def test_cashier_cannot_dispense(self):
        prescription = TestDataFactory.create_prescription(self.vendor)
        self.client.authenticate_user(TestDataFactory.create_staff(self.vendor, 'cashier'))
        response = self.client.post(f'/api/v1/pharmacy/prescriptions/{prescription.id}/dispense/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class PharmacyOrderTests(PharmacyTestCase):

    def test_create_order_computes_totals(self):
        data = {
            'customer_name': 'Natasha Phiri', 'customer_email': 'natasha@test.com', 'order_type': 'walk-in',
            'items': [{'name': 'Amoxil', 'quantity': 2, 'price': '30.00'}], 'tax': '5.00', 'shipping_fee': '10.00',
        }
        response = self.client.post('/api/v1/pharmacy/orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        order = response.data['order']
        self.assertEqual(Decimal(order['subtotal']), Decimal('60.00'))
        self.assertEqual(Decimal(order['total_amount']), Decimal('75.00'))
        self.assertTrue(order['order_number'].startswith('PH' + timezone.localdate().strftime('%y%m%d')))

    def test_order_requires_items(self):
        response = self.client.post('/api/v1/pharmacy/orders/', {'customer_name': 'A', 'items': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_status_transitions_stamp_dates(self):
        order = TestDataFactory.create_pharmacy_order(self.vendor)
        response = self.client.patch(f'/api/v1/pharmacy/orders/{order.id}/', {'status': 'confirmed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNotNone(response.data['order']['confirmed_date'])
        self.assertIsNone(response.data['order']['ready_date'])
        self.client.patch(f'/api/v1/pharmacy/orders/{order.id}/', {'status': 'ready'}, format='json')
        self.client.patch(f'/api/v1/pharmacy/orders/{order.id}/', {'status': 'completed'}, format='json')
        order.refresh_from_db()
        self.assertIsNotNone(order.ready_date)
        self.assertIsNotNone(order.completed_date)

    def test_cashier_manages_orders(self):
        self.client.authenticate_user(TestDataFactory.create_staff(self.vendor, 'cashier'))
        response = self.client.get('/api/v1/pharmacy/orders/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_orders_filtered_by_status(self):
        TestDataFactory.create_pharmacy_order(self.vendor, status='completed')
        TestDataFactory.create_pharmacy_order(self.vendor, status='pending')
        response = self.client.get('/api/v1/pharmacy/orders/?status=completed')
        self.assertEqual(response.data['pagination']['total'], 1)


class PatientTests(PharmacyTestCase):

    def test_patient_id_is_generated(self):
        data = {'first_name': 'Mutale', 'last_name': 'Banda', 'email': 'mutale@test.com', 'gender': 'female'}
        response = self.client.post('/api/v1/pharmacy/patients/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertRegex(response.data['patient_id'], r'^PAT\d{6}$')

    def test_duplicate_email(self):
        TestDataFactory.create_patient(self.vendor, email='dup@test.com')
        data = {'first_name': 'A', 'last_name': 'B', 'email': 'dup@test.com'}
        response = self.client.post('/api/v1/pharmacy/patients/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_search_and_status(self):
        TestDataFactory.create_patient(self.vendor, first_name='Chileshe')
        patient = TestDataFactory.create_patient(self.vendor, first_name='Kondwani')
        patient.is_active = False
        patient.save()
        response = self.client.get('/api/v1/pharmacy/patients/?search=chil')
        self.assertEqual(response.data['pagination']['total'], 1)
        response = self.client.get('/api/v1/pharmacy/patients/?status=inactive')
        self.assertEqual(response.data['patients'][0]['first_name'], 'Kondwani')


class InsuranceClaimTests(PharmacyTestCase):

    def _claim(self, **extra):
        data = {'patient_name': 'Test Patient', 'insurance_provider': 'nhima', 'policy_number': 'NH-1',
                'claim_amount': '300.00'}
        data.update(extra)
        return self.client.post('/api/v1/pharmacy/insurance/claims/', data, format='json')

    def test_create_claim(self):
        response = self._claim()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['claim_number'].startswith('CLM'))
        self.assertIsNone(response.data['processed_date'])

    def test_approval_stamps_processed_date(self):
        claim_id = self._claim().data['id']
        response = self.client.patch(f'/api/v1/pharmacy/insurance/claims/{claim_id}/',
                                     {'status': 'approved', 'approved_amount': '250.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNotNone(InsuranceClaim.objects.get(pk=claim_id).processed_date)

    def test_approved_amount_cannot_exceed_claim(self):
        claim_id = self._claim().data['id']
        response = self.client.patch(f'/api/v1/pharmacy/insurance/claims/{claim_id}/',
                                     {'approved_amount': '301.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_summary(self):
        self._claim()
        self._claim(claim_amount='100.00')
        response = self.client.get('/api/v1/pharmacy/insurance/claims/')
        self.assertEqual(response.data['summary']['total'], 2)
        self.assertEqual(response.data['summary']['total_claimed'], 400.0)

    def test_cashier_refused(self):
        self.client.authenticate_user(TestDataFactory.create_staff(self.vendor, 'cashier'))
        response = self.client.get('/api/v1/pharmacy/insurance/claims/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ComplianceTests(PharmacyTestCase):

    def _record(self, due_in_days=30, **extra):
        data = {'title': 'Annual inspection', 'type': 'inspection', 'priority': 'high',
                'due_date': (timezone.localdate() + timedelta(days=due_in_days)).isoformat(),
                'responsible_person': 'Head pharmacist'}
        data.update(extra)
        return self.client.post('/api/v1/pharmacy/compliance/records/', data, format='json')

    def test_record_id_format(self):
        response = self._record()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        record_id = response.data['record_id']
        self.assertRegex(record_id, r'^CR\d{12}$')
        self.assertTrue(record_id.startswith('CR' + timezone.localdate().strftime('%y%m%d')))
        self.assertEqual(response.data['type'], 'inspection')

    def test_overdue_is_derived(self):
        self._record(due_in_days=-3)
        self._record(due_in_days=10)
        response = self.client.get('/api/v1/pharmacy/compliance/records/')
        summary = response.data['summary']
        self.assertEqual(summary['overdue'], 1)
        self.assertEqual(summary['pending'], 1)
        overdue = [r for r in response.data['records'] if r['is_overdue']]
        self.assertEqual(overdue[0]['current_status'], 'overdue')
        response = self.client.get('/api/v1/pharmacy/compliance/records/?status=overdue')
        self.assertEqual(response.data['pagination']['total'], 1)

    def test_completion_stamps_date(self):
        record_id = self._record().data['id']
        response = self.client.patch(f'/api/v1/pharmacy/compliance/records/{record_id}/',
                                     {'status': 'completed'}, format='json')
        self.assertEqual(response.data['completed_date'], timezone.localdate().isoformat())

    def test_technician_refused(self):
        self.client.authenticate_user(TestDataFactory.create_staff(self.vendor, 'technician'))
        response = self.client.get('/api/v1/pharmacy/compliance/records/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_pharmacist_allowed(self):
        self.client.authenticate_user(TestDataFactory.create_staff(self.vendor, 'pharmacist'))
        response = self._record()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(ComplianceRecord.objects.get().vendor, self.vendor)


class PharmacyDashboardTests(PharmacyTestCase):

    def test_dashboard_stats(self):
        TestDataFactory.create_medicine(self.vendor)
        TestDataFactory.create_medicine(self.vendor, stock=2)
        TestDataFactory.create_medicine(self.vendor, expiry_days=10)
        TestDataFactory.create_pharmacy_order(self.vendor, status='completed', total=Decimal('120.00'))
        TestDataFactory.create_pharmacy_order(self.vendor, status='pending', total=Decimal('80.00'))
        TestDataFactory.create_prescription(self.vendor)
        response = self.client.get('/api/v1/pharmacy/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        stats = response.data['stats']
        # the prescription factory adds a fourth medicine
        self.assertEqual(stats['total_medicines'], 4)
        self.assertEqual(stats['low_stock_medicines'], 1)
        self.assertEqual(stats['expiring_soon'], 1)
        self.assertEqual(stats['total_revenue'], 120.0)
        self.assertEqual(stats['pending_orders'], 1)
        self.assertEqual(stats['pending_prescriptions'], 1)
        self.assertEqual(len(response.data['charts']['revenue_trend']), 7)

    def test_customers_from_orders_and_messages(self):
        TestDataFactory.create_pharmacy_order(self.vendor, status='completed', customer_email='a@test.com',
                                              customer_name='Alice')
        TestDataFactory.create_pharmacy_order(self.vendor, status='pending', customer_email='b@test.com')
        customer = TestDataFactory.create_customer(email='c@test.com')
        Message.objects.create(
            sender=customer, sender_email=customer.email, sender_name='Carol', sender_role='customer',
            recipient=self.vendor, recipient_email=self.vendor.email, recipient_role='manager',
            conversation_id=str(self.vendor.id), content='Do you stock insulin?',
        )
        response = self.client.get('/api/v1/pharmacy/customers/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        emails = {c['email']: c for c in response.data['customers']}
        self.assertEqual(set(emails), {'a@test.com', 'c@test.com'})
        self.assertEqual(emails['a@test.com']['total_spent'], 75.0)
        self.assertTrue(emails['c@test.com']['has_messages'])

    def test_store_vendor_refused(self):
        self.client.authenticate_user(TestDataFactory.create_subscribed_vendor('store'))
        response = self.client.get('/api/v1/pharmacy/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Access denied. Pharmacy staff only.')
        self.assertFalse(PharmacyOrder.objects.exists())
        self.assertFalse(Medicine.objects.exists())
