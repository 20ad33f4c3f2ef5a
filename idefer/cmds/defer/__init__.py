CATEGORY = "Deferred Commands"
