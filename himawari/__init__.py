"""Full-disk Himawari imagery service."""
