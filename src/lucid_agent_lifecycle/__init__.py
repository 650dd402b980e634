"""
LUCID agent package lifecycle hooks.

Post-install: includes the agent's Mosquitto override directory in the broker
config and initializes agent state. Removal: purges generated operations and
mapper lock files on "purge" only.
"""
