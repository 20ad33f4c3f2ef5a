CATEGORY = "Hooks"
