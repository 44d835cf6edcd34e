class BarsWaxError(Exception):
    # base exception for all application-specific errors.
    pass

class ConfigError(BarsWaxError):
    # errors related to configuration.
    pass

class DiscoveryError(BarsWaxError):
    # errors while expanding glob patterns.
    pass

class LoadError(BarsWaxError):
    # errors while loading a module or data file.
    pass

class TemplateError(BarsWaxError):
    # errors related to template compilation or rendering.
    pass

class OutputError(BarsWaxError):
    # errors during output operations.
    pass
