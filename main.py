"""
Entry point script for mpask.
This allows running the app directly from the project root.
"""
from mpipe.main import main

if __name__ == "__main__":
    main()
