# Relay endpoints, one module per surface
