"""Business document field extraction and normalization.

Turns noisy recognized text of Japanese/English delivery slips, invoices,
purchase orders and quotations into a canonical record and projects it
into the record shapes of downstream back-office systems.
"""

__version__ = "1.0.0"
