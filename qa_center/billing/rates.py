"""Billing rates in effect at computation time."""
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict
from qa_center.core.config import Settings, settings


@dataclass(frozen=True)
class BillingRates:
    """Unit costs (what we pay) and prices (what we charge).

    STT rates are per minute of audio, LLM rates per token.
    """

    cost_stt_prerecorded: Decimal
    cost_openai_input: Decimal
    cost_openai_output: Decimal
    price_stt_prerecorded: Decimal
    price_openai_input: Decimal
    price_openai_output: Decimal

    @classmethod
    def from_settings(cls, current: Settings = settings) -> "BillingRates":
        return cls(
            cost_stt_prerecorded=Decimal(str(current.cost_stt_prerecorded)),
            cost_openai_input=Decimal(str(current.cost_openai_input)),
            cost_openai_output=Decimal(str(current.cost_openai_output)),
            price_stt_prerecorded=Decimal(str(current.price_stt_prerecorded)),
            price_openai_input=Decimal(str(current.price_openai_input)),
            price_openai_output=Decimal(str(current.price_openai_output)),
        )

    def as_dict(self) -> Dict[str, float]:
        """Camel-cased rates as returned by the API."""
        return {
            "costSttPrerecorded": float(self.cost_stt_prerecorded),
            "costOpenAiInput": float(self.cost_openai_input),
            "costOpenAiOutput": float(self.cost_openai_output),
            "priceSttPrerecorded": float(self.price_stt_prerecorded),
            "priceOpenAiInput": float(self.price_openai_input),
            "priceOpenAiOutput": float(self.price_openai_output),
        }


def get_billing_rates() -> BillingRates:
    """FastAPI dependency returning the current rates."""
    return BillingRates.from_settings(settings)
