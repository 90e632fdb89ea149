"""Dispensing and order bookkeeping for pharmacies"""
import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from .models import Medicine

logger = logging.getLogger(__name__)


class DispenseError(Exception):
    """Raised when a prescription cannot be dispensed"""


def dispense_prescription(prescription, user):
    """
    Mark a prescription dispensed and take its linked medicines out of stock.

    Lines without a `medicine` id (free text from a paper prescription) are
    dispensed without a stock movement.
    """
    if prescription.status == 'dispensed':
        raise DispenseError('Prescription already dispensed')
    if prescription.status == 'cancelled':
        raise DispenseError('Prescription has been cancelled')
    if prescription.is_expired:
        if prescription.status != 'expired':
            prescription.status = 'expired'
            prescription.save(update_fields=['status', 'updated_at'])
        raise DispenseError('Prescription has expired')

    with transaction.atomic():
        wanted = {}
        for line in prescription.medicines:
            if not line.get('medicine'):
                continue
            try:
                medicine_id = int(line['medicine'])
                quantity = int(line.get('quantity', 1))
            except (TypeError, ValueError):
                raise DispenseError(f"Invalid medicine line: {line.get('name') or line['medicine']}")
            wanted[medicine_id] = wanted.get(medicine_id, 0) + quantity

        medicines = {
            m.id: m for m in Medicine.objects.select_for_update().filter(vendor=prescription.vendor, id__in=wanted)
        }
        for medicine_id, quantity in wanted.items():
            medicine = medicines.get(medicine_id)
            if medicine is None:
                raise DispenseError(f'Medicine {medicine_id} not found')
            if medicine.status == 'expired':
                raise DispenseError(f'{medicine.name} has expired')
            if medicine.stock < quantity:
                raise DispenseError(
                    f'Insufficient stock for {medicine.name}. Available: {medicine.stock}, Requested: {quantity}'
                )

        total = Decimal('0.00')
        for medicine_id, quantity in wanted.items():
            Medicine.objects.filter(pk=medicine_id).update(stock=F('stock') - quantity)
            medicine = Medicine.objects.get(pk=medicine_id)
            # save() re-derives low_stock
            medicine.save(update_fields=['stock', 'status', 'updated_at'])
            total += medicine.price * quantity

        prescription.status = 'dispensed'
        prescription.dispensed_date = timezone.now()
        prescription.dispensed_by = user
        if not prescription.total_amount:
            prescription.total_amount = total
        prescription.save()

    logger.info(f"Prescription {prescription.prescription_number} dispensed by {user.email}")
    return prescription


def order_totals(items, tax=None, shipping_fee=None):
    """Return (subtotal, total) for validated order lines"""
    subtotal = sum((Decimal(str(line['total'])) for line in items), Decimal('0.00'))
    total = subtotal + (tax or Decimal('0.00')) + (shipping_fee or Decimal('0.00'))
    return subtotal, total
