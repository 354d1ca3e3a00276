"""
Domain and request models for vidreach using Pydantic
"""
from vidreach.models.composition import (
    AssetKind,
    CompositionRequest,
    CompositionResult,
    LocalAsset,
)
from vidreach.models.requests import CompositionPayload

__all__ = [
    'AssetKind',
    'CompositionRequest',
    'CompositionResult',
    'LocalAsset',
    'CompositionPayload',
]
