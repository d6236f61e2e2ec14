"""
Conversion between bound record fields and driver values.
"""
from sqlqueue.adapters.conversion import bind_parameters, bind_row
from sqlqueue.adapters.conversion import from_result, to_param

__all__ = [
    'bind_parameters',
    'bind_row',
    'from_result',
    'to_param',
]
