# Business logic layer; routes call these module-level service singletons
