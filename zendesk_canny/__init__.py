"""
Zendesk Help Center community → Canny migration.

* :mod:`zendesk_canny.clients` – Zendesk (source) and Canny (destination) REST clients
* :mod:`zendesk_canny.collector` – per-topic collection with the details worker pool
* :mod:`zendesk_canny.migrator` – idempotent creation driven by the state ledger
* :mod:`zendesk_canny.run_migrate` – command-line entry point
"""
