"""Vehicle cleaning and decoration packages, booked like mechanic visits."""
