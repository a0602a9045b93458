"""Mailbox rental pricing and rate audit toolkit."""
from mailbox_pricing.application.use_cases import (
    AuditReconciler,
    PricingContext,
    QuotePriceUseCase,
    QuoteRenewalUseCase,
)
from mailbox_pricing.domain.classifier import RecipientClassifier
from mailbox_pricing.domain.pricing import PriceCalculator
from mailbox_pricing.domain.rates import RateTable
from mailbox_pricing.domain.renewal import RenewalProrationCalculator
from mailbox_pricing.infrastructure.repositories.excel_repositories import WorkbookStore

__all__ = [
    "AuditReconciler",
    "PricingContext",
    "QuotePriceUseCase",
    "QuoteRenewalUseCase",
    "RecipientClassifier",
    "PriceCalculator",
    "RateTable",
    "RenewalProrationCalculator",
    "WorkbookStore",
]
