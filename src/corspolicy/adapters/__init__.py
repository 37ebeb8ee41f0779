"""Framework adapters that apply a compiled Policy to live traffic."""
