# Service layer for the Mesh Tether shell
# - preferences:     key/value settings with defaults (NiceGUI storage backed)
# - worker:          worker protocol and the subprocess-backed mesh worker
# - service_machine: STOPPED/STARTING/RUNNING supervision of the worker
# - fanout:          observer slots for the status/links/info views + state broadcast
# - notifications:   maps service events to alerts and modal dialogs
