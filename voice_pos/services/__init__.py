"""
Services Package for Voice POS
==============================

Service modules that encapsulate infrastructure concerns.

Available Services:
-------------------
- **sales**: Sale persistence (database writer and the cart's persistence
  collaborators)

Usage:
------
    from voice_pos.services.sales import record_completed_sale, HttpSalePersister
"""
