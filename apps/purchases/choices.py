from django.db import models


class SplitMethod(models.TextChoices):
    EQUAL = 'equal', 'Equal'
    QUANTITY = 'quantity', 'Quantity'
    CUSTOM = 'custom', 'Custom'


class SettlementStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    COMPLETED = 'completed', 'Completed'
