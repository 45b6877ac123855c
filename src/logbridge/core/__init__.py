"""Value model, conversion and encoding shared by the bridges."""
