"""Domain packages shared by the ThinkPro assessment services."""
