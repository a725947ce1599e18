"""Feature packages of the ongoing-game engine."""
