CATEGORY = "Utilities"
