"""
Utility modules for the clinic billing application.

Currently holds the clinic-timezone datetime helpers shared by the ledger
services and the API.
"""
