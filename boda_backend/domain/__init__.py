"""Pure booking rules: statuses, flags, payments and availability."""
