"""
Bookings app.

Holds the PhotoRequest (what the guest asked for) and the Booking (the
match between a guest's request and a photographer). Both are created by
the matching flow outside this project; the escrow app only mirrors
settlement progress onto them.
"""
