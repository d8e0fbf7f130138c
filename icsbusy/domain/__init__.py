"""Domain logic built on parsed events: busy-time projection and feed URL checks."""
