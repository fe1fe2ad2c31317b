"""Runtime Status Reconciler (RSR).

Keeps a shared store in sync with a fleet of integration-runtime
containers (devmode sessions and production pods):
 - periodic status probing over HTTP, guarded by circuit breakers
 - ordered per-queue dispatch of probe and cleanup work
 - cleanup of devmode sessions whose pod disappeared
 - file upload + hot reload when a devmode container (re)starts
"""
