from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.urls import reverse
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class OpportunityStage(models.TextChoices):
    """Sales pipeline stages. Each stage carries a default probability and a colour."""

    NOUVEAU = 'nouveau', _('New')
    QUALIFICATION = 'qualification', _('Qualification')
    PROPOSITION_ENVOYEE = 'proposition_envoyee', _('Proposal sent')
    NEGOCIATION = 'negociation', _('Negotiation')
    CONVERTI = 'converti', _('Won')
    PERDU = 'perdu', _('Lost')

    @classmethod
    def probability_for(cls, stage):
        return STAGE_PROBABILITIES.get(stage, 0)

    @classmethod
    def color_for(cls, stage):
        return STAGE_COLORS.get(stage, 'gray')

    @classmethod
    def is_final(cls, stage):
        return stage in FINAL_STAGES

    @classmethod
    def options(cls):
        return [
            {
                'value': value,
                'label': str(label),
                'probability': cls.probability_for(value),
                'color': cls.color_for(value),
            }
            for value, label in cls.choices
        ]


STAGE_PROBABILITIES = {
    OpportunityStage.NOUVEAU: 10,
    OpportunityStage.QUALIFICATION: 25,
    OpportunityStage.PROPOSITION_ENVOYEE: 50,
    OpportunityStage.NEGOCIATION: 75,
    OpportunityStage.CONVERTI: 100,
    OpportunityStage.PERDU: 0,
}

STAGE_COLORS = {
    OpportunityStage.NOUVEAU: 'blue',
    OpportunityStage.QUALIFICATION: 'yellow',
    OpportunityStage.PROPOSITION_ENVOYEE: 'purple',
    OpportunityStage.NEGOCIATION: 'orange',
    OpportunityStage.CONVERTI: 'green',
    OpportunityStage.PERDU: 'red',
}

FINAL_STAGES = (OpportunityStage.CONVERTI, OpportunityStage.PERDU)


class OpportunityQuerySet(models.QuerySet):

    def open(self):
        return self.exclude(stage__in=FINAL_STAGES)

    def won(self):
        return self.filter(stage=OpportunityStage.CONVERTI)

    def lost(self):
        return self.filter(stage=OpportunityStage.PERDU)

    def closing_this_month(self):
        today = timezone.localdate()
        return self.filter(expected_close_date__year=today.year, expected_close_date__month=today.month)

    def overdue(self):
        return self.open().filter(expected_close_date__lt=timezone.localdate())


class Opportunity(models.Model):
    """
    A deal in the sales pipeline

    Saving with a new stage or amount writes an OpportunityActivity.
    Entering a final stage (won / lost) stamps actual_close_date.
    """

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)

    contact = models.ForeignKey('contacts.Contact', on_delete=models.CASCADE, related_name='opportunities')
    company = models.ForeignKey('contacts.Company', on_delete=models.SET_NULL, null=True, blank=True, related_name='opportunities')
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='opportunities',
                              help_text='Sales rep')

    amount = models.DecimalField(max_digits=15, decimal_places=2, default=0, validators=[MinValueValidator(0)])
    currency = models.CharField(max_length=3, default='EUR')
    probability = models.PositiveSmallIntegerField(default=10, validators=[MinValueValidator(0), MaxValueValidator(100)],
                                                   help_text='Probability in percent (0-100)')
    stage = models.CharField(max_length=30, choices=OpportunityStage.choices, default=OpportunityStage.NOUVEAU, db_index=True)

    expected_close_date = models.DateField(db_index=True)
    actual_close_date = models.DateField(null=True, blank=True)

    lead_source = models.CharField(max_length=255, blank=True)
    loss_reason = models.CharField(max_length=255, blank=True)
    next_step = models.TextField(blank=True)

    # [{"name": str, "quantity": n, "unit_price": x, "total": n * x}]
    products = models.JSONField(default=list, blank=True)
    competitors = models.CharField(max_length=255, blank=True)
    custom_fields = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = OpportunityQuerySet.as_manager()

    class Meta:
        verbose_name = 'Opportunity'
        verbose_name_plural = 'Opportunities'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['company', 'stage'], name='opp_company_stage_idx'),
            models.Index(fields=['owner', 'stage'], name='opp_owner_stage_idx'),
        ]

    def __str__(self):
        return self.name

    def get_absolute_url(self):
        return reverse('opportunities:opportunity_detail', kwargs={'pk': self.pk})

    def save(self, *args, **kwargs):
        previous = None
        if self.pk:
            previous = Opportunity.objects.filter(pk=self.pk).values('stage', 'amount').first()

        if self.products:
            self.products = normalize_products(self.products)

        stage_changed = previous is not None and previous['stage'] != self.stage
        if stage_changed and OpportunityStage.is_final(self.stage):
            self.actual_close_date = timezone.localdate()
            update_fields = kwargs.get('update_fields')
            if update_fields is not None:
                kwargs['update_fields'] = set(update_fields) | {'actual_close_date'}

        super().save(*args, **kwargs)

        if previous is None:
            return

        if stage_changed:
            self.activities.create(
                user=self._activity_user(),
                type=OpportunityActivity.TYPE_STAGE_CHANGE,
                title=_('Stage changed'),
                description=_('The stage was changed'),
                old_value=previous['stage'],
                new_value=self.stage,
            )

        if Decimal(str(previous['amount'])) != Decimal(str(self.amount)):
            self.activities.create(
                user=self._activity_user(),
                type=OpportunityActivity.TYPE_AMOUNT_CHANGE,
                title=_('Amount changed'),
                description=_('The amount was changed'),
                old_value=str(previous['amount']),
                new_value=str(self.amount),
            )

    def _activity_user(self):
        from apps.core.middleware import get_current_user
        return get_current_user() or self.owner

    # COMPUTED

    @property
    def weighted_amount(self):
        return (Decimal(str(self.amount)) * self.probability / 100).quantize(Decimal('0.01'))

    @property
    def days_until_close(self):
        if not self.expected_close_date:
            return None
        return (self.expected_close_date - timezone.localdate()).days

    @property
    def is_overdue(self):
        if not self.expected_close_date or self.is_closed:
            return False
        return timezone.localdate() > self.expected_close_date

    @property
    def is_closed(self):
        return OpportunityStage.is_final(self.stage)

    @property
    def stage_color(self):
        return OpportunityStage.color_for(self.stage)

    @property
    def products_total(self):
        return sum(Decimal(str(product.get('total', 0))) for product in self.products or [])


def normalize_products(products):
    """Recompute each product line total as quantity x unit_price."""
    lines = []
    for product in products:
        quantity = Decimal(str(product.get('quantity', 1)))
        unit_price = Decimal(str(product.get('unit_price', 0)))
        total = quantity * unit_price
        lines.append({
            'name': product.get('name', ''),
            'quantity': int(quantity) if quantity == quantity.to_integral_value() else float(quantity),
            'unit_price': float(unit_price),
            'total': float(total),
        })
    return lines


class OpportunityActivity(models.Model):
    """Timeline entry of an opportunity: user actions (call, meeting...) and automatic changes."""

    TYPE_NOTE = 'note'
    TYPE_CALL = 'call'
    TYPE_EMAIL = 'email'
    TYPE_MEETING = 'meeting'
    TYPE_TASK = 'task'
    TYPE_OTHER = 'other'
    TYPE_STAGE_CHANGE = 'stage_change'
    TYPE_AMOUNT_CHANGE = 'amount_change'
    TYPE_CREATED = 'created'

    TYPE_CHOICES = [
        (TYPE_NOTE, _('Note')),
        (TYPE_CALL, _('Call')),
        (TYPE_EMAIL, _('Email')),
        (TYPE_MEETING, _('Meeting')),
        (TYPE_TASK, _('Task')),
        (TYPE_OTHER, _('Other')),
        (TYPE_STAGE_CHANGE, _('Stage change')),
        (TYPE_AMOUNT_CHANGE, _('Amount change')),
        (TYPE_CREATED, _('Created')),
    ]

    # Types a user can add by hand
    USER_TYPES = [TYPE_NOTE, TYPE_CALL, TYPE_EMAIL, TYPE_MEETING, TYPE_TASK, TYPE_OTHER]

    opportunity = models.ForeignKey(Opportunity, on_delete=models.CASCADE, related_name='activities')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                             related_name='opportunity_activities')
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=TYPE_NOTE, db_index=True)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    old_value = models.CharField(max_length=255, blank=True)
    new_value = models.CharField(max_length=255, blank=True)
    scheduled_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Opportunity activity'
        verbose_name_plural = 'Opportunity activities'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.get_type_display()}: {self.title}"

    @property
    def is_completed(self):
        return self.completed_at is not None

    def complete(self):
        self.completed_at = timezone.now()
        self.save(update_fields=['completed_at'])
