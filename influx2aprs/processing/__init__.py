from .observation import Observation, SampleTuple, DedupState
from .data_processor import DataProcessor, FIELD_CONVERSIONS

__all__ = ['Observation', 'SampleTuple', 'DedupState', 'DataProcessor', 'FIELD_CONVERSIONS']
