"""Database models for vendor payouts."""

from django.db import models


class PayoutRequest(models.Model):
    """A vendor's request to withdraw part of the shop balance.

    While the request is open its amount sits in ``Shop.pending_balance``.
    """

    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_COMPLETED = 'completed'
    STATUS_REJECTED = 'rejected'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_REJECTED, 'Rejected'),
    )
    OPEN_STATUSES = (STATUS_PENDING, STATUS_APPROVED)

    shop = models.ForeignKey('shops.Shop', on_delete=models.CASCADE, related_name='payout_requests')
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    bank_name = models.CharField(max_length=255, blank=True, default='')
    account_number = models.CharField(max_length=64, blank=True, default='')
    notes = models.TextField(blank=True, default='')
    admin_notes = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    processed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['status', 'created_at'], name='payout_status_created_idx'),
        ]

    def __str__(self):
        return f"Payout #{self.pk} {self.amount} ({self.status})"
