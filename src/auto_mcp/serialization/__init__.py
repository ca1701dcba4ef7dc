# Serialization configuration, converters and schema composition
