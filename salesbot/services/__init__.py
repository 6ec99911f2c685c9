"""Business logic used by the routes and the schedule evaluator."""
