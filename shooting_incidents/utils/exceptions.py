class ShootingIncidentException(Exception):
    """Base Exception Class"""
    pass
class ConfigError(ShootingIncidentException):
    """Malformed population snapshot configuration (anchor years, populations, target year)"""
    pass
class DataProcessingError(ShootingIncidentException):
    """Error for Processing the Data"""
    pass
class PopulationLookupError(ShootingIncidentException, LookupError):
    """No population table entry for an incident's (year, region)"""
    pass
class AggregationInconsistencyError(ShootingIncidentException):
    """Records sharing a (year, region) key carry differing population values"""
    pass

