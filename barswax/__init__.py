# barswax/__init__.py
"""
barswax: wires directories of Handlebars partials, helpers, decorators and
data files into a pybars engine, and compiles templates that merge a shared
data context into every render.
"""
from barswax.config.settings import WaxConfig
from barswax.core.engine import CompiledTemplate, HandlebarsEngine
from barswax.core.keygen import keygen_decorator, keygen_helper, keygen_partial
from barswax.core.resolver import reduce_record, resolve_value
from barswax.core.wax import RenderResult, Wax, create_wax

__version__ = "0.1.0"

__all__ = [
    "CompiledTemplate",
    "HandlebarsEngine",
    "RenderResult",
    "Wax",
    "WaxConfig",
    "create_wax",
    "keygen_decorator",
    "keygen_helper",
    "keygen_partial",
    "reduce_record",
    "resolve_value",
]
