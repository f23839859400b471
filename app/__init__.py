"""SheetSmith backend package."""
