# barswax/core/__init__.py
"""
Core of barswax: name generation, source resolution, the pybars engine
adapter and the Wax facade.
"""
