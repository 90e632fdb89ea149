"""
Test suite for the messaging module
Tests: sending, conversation scoping, read flags, conversations, notifications
"""
from django.test import TestCase
from rest_framework import status

from shiteni.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import Message, Notification


class MessagingTestCase(TestCase):

    def setUp(self):
        self.vendor = TestDataFactory.create_vendor('store', business_name='Kabwe Electronics')
        self.customer = TestDataFactory.create_customer(email='buyer@test.com', name='Buyer One')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.customer)

    def _customer_sends(self, content='Is this in stock?', **extra):
        return self.client.post('/api/v1/messages/send/', {
            'vendor_id': self.vendor.id, 'content': content, **extra,
        }, format='json')


class SendMessageTests(MessagingTestCase):

    def test_customer_writes_to_vendor(self):
        response = self._customer_sends(product_name='Radio')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        message = Message.objects.get()
        self.assertEqual(message.conversation_id, str(self.vendor.id))
        self.assertEqual(message.recipient, self.vendor)
        self.assertEqual(message.recipient_name, 'Kabwe Electronics')
        self.assertEqual(message.content, 'Product: Radio\n\nIs this in stock?')

    def test_vendor_id_and_content_required(self):
        response = self.client.post('/api/v1/messages/send/', {'content': 'Hello'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post('/api/v1/messages/send/', {'vendor_id': self.vendor.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_vendor(self):
        response = self.client.post('/api/v1/messages/send/', {'vendor_id': 99999, 'content': 'Hi'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_staff_reply_stays_in_vendor_conversation(self):
        self._customer_sends()
        cashier = TestDataFactory.create_staff(self.vendor, 'cashier')
        self.client.authenticate_user(cashier)
        response = self.client.post('/api/v1/messages/send/', {
            'recipient_id': 'buyer@test.com', 'content': 'Yes, 4 left',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        reply = Message.objects.get(sender=cashier)
        self.assertEqual(reply.conversation_id, str(self.vendor.id))
        self.assertEqual(reply.recipient, self.customer)

    def test_vendor_reply_requires_recipient(self):
        self.client.authenticate_user(self.vendor)
        response = self.client.post('/api/v1/messages/send/', {'content': 'Hello'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ConversationTests(MessagingTestCase):

    def setUp(self):
        super().setUp()
        self._customer_sends('First')
        self._customer_sends('Second')
        other = TestDataFactory.create_customer(email='other@test.com')
        self.client.authenticate_user(other)
        self._customer_sends('From someone else')

    def test_customer_sees_only_own_messages(self):
        self.client.authenticate_user(self.customer)
        response = self.client.get('/api/v1/messages/')
        self.assertEqual([m['content'] for m in response.data['messages']], ['First', 'Second'])

    def test_vendor_sees_whole_conversation(self):
        self.client.authenticate_user(self.vendor)
        response = self.client.get('/api/v1/messages/')
        self.assertEqual(response.data['pagination']['total'], 3)
        response = self.client.get('/api/v1/messages/?customer=buyer@test.com')
        self.assertEqual(response.data['pagination']['total'], 2)

    def test_vendor_cannot_read_other_conversation(self):
        other_vendor = TestDataFactory.create_vendor('store')
        self.client.authenticate_user(other_vendor)
        response = self.client.get(f'/api/v1/messages/?conversation_id={self.vendor.id}')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_vendor_conversations_group_by_customer(self):
        self.client.authenticate_user(self.vendor)
        response = self.client.get('/api/v1/messages/conversations/')
        threads = {t['customer_email']: t for t in response.data['conversations']}
        self.assertEqual(threads['buyer@test.com']['unread_count'], 2)
        self.assertEqual(threads['buyer@test.com']['last_message']['content'], 'Second')
        self.assertEqual(response.data['total_unread'], 3)

    def test_mark_conversation_read(self):
        self.client.authenticate_user(TestDataFactory.create_staff(self.vendor, 'cashier'))
        response = self.client.post('/api/v1/messages/mark-read/',
                                    {'conversation_id': str(self.vendor.id)}, format='json')
        self.assertEqual(response.data['updated'], 3)
        self.assertFalse(Message.objects.filter(is_read=False).exists())

    def test_customer_conversations_show_vendor(self):
        self.client.authenticate_user(self.vendor)
        self.client.post('/api/v1/messages/send/', {'recipient_id': self.customer.id, 'content': 'Hi'},
                         format='json')
        self.client.authenticate_user(self.customer)
        response = self.client.get('/api/v1/messages/conversations/')
        thread = response.data['conversations'][0]
        self.assertEqual(thread['vendor_name'], 'Kabwe Electronics')
        self.assertEqual(thread['unread_count'], 1)

        message_id = Message.objects.get(recipient=self.customer).id
        response = self.client.post('/api/v1/messages/mark-read/', {'message_ids': [message_id]}, format='json')
        self.assertEqual(response.data['updated'], 1)

    def test_mark_read_requires_target(self):
        response = self.client.post('/api/v1/messages/mark-read/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class NotificationTests(MessagingTestCase):

    def test_list_and_mark_read(self):
        first = Notification.objects.create(user=self.customer, title='Welcome', message='Hello')
        Notification.objects.create(user=self.customer, title='Order shipped', message='On its way')
        response = self.client.get('/api/v1/notifications/')
        self.assertEqual(response.data['unread_count'], 2)

        response = self.client.patch(f'/api/v1/notifications/{first.id}/read/')
        self.assertTrue(response.data['is_read'])
        response = self.client.post('/api/v1/notifications/mark-all-read/')
        self.assertEqual(response.data['updated'], 1)

    def test_cannot_read_someone_elses_notification(self):
        notification = Notification.objects.create(user=self.vendor, title='Private', message='x')
        response = self.client.patch(f'/api/v1/notifications/{notification.id}/read/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_admin_sends_to_role(self):
        TestDataFactory.create_customer()
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.post('/api/v1/notifications/send/', {
            'role': 'customer', 'title': 'Maintenance', 'message': 'Tonight', 'type': 'warning',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['sent'], 2)
        self.assertEqual(Notification.objects.filter(notification_type='warning').count(), 2)

    def test_only_admins_send(self):
        response = self.client.post('/api/v1/notifications/send/', {
            'user_id': self.vendor.id, 'title': 'x', 'message': 'y',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
