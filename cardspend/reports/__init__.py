"""Weekly and monthly spending reports with leveled threshold alerts."""
