"""EV charging network console: stations, bookings and QR-gated charging sessions."""
