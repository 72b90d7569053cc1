"""Business services: invoices, payments, customers and the business profile."""
