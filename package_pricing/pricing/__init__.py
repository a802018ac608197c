from .engine import PriceRequest, PricingEngine, compute_price
from .errors import PricingError
from .pipeline import PipelineSettings

__all__ = ["PriceRequest", "PricingEngine", "compute_price", "PricingError", "PipelineSettings"]
