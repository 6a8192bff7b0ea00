class ConfigurationError(ValueError):
    """Raised when an application graph, topology or module mapping refers to
    a module or device that does not exist. Always raised at build time, never
    once the simulation is running."""
    pass
