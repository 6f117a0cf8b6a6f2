"""Data access for accounts, events, payments, sales, payment methods, tickets and transfers."""