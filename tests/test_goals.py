"""Tests for goal requests, the goal queue and arrival actions."""

import math
import random
import unittest

from robonav.core import Transform
from robonav.navigation import (
    AlignRotation, GoalPointState, GoalQueue, InvalidAction, NoAction, PatrolGoal,
    PointOfInterestGoal, RandomGoal, SpiralAction, TransformGoal, WaitAction, World, make_action
)


def office():
    return World(
        'office',
        smoothed_transforms=[Transform.from_xy_theta(float(i), 0.0) for i in range(5)],
        points_of_interest={
            'kitchen': Transform.from_xy_theta(3.0, 1.0),
            'desk': Transform.from_xy_theta(0.0, 2.0),
        }
    )


class TestGoalRequests(unittest.TestCase):

    def setUp(self):
        self.world = office()
        self.rng = random.Random(7)

    def test_transform_goal(self):
        tf = Transform.from_xy_theta(1.0, 1.0)
        goal = TransformGoal(tf, action=WaitAction(3.0)).to_goal_point(self.world, self.rng)
        self.assertEqual(goal.transform, tf)
        self.assertIsInstance(goal.action, WaitAction)
        self.assertEqual(goal.state, GoalPointState.NEW)

    def test_point_of_interest(self):
        goal = PointOfInterestGoal('kitchen').to_goal_point(self.world, self.rng)
        self.assertEqual(goal.transform, self.world.points_of_interest['kitchen'])
        self.assertIsNone(PointOfInterestGoal('garage').resolve(self.world, self.rng))
        self.assertIsNone(PointOfInterestGoal('kitchen').resolve(None, self.rng))

    def test_random_goal_is_reproducible(self):
        first = [RandomGoal().resolve(self.world, random.Random(42)) for _ in range(3)]
        second = [RandomGoal().resolve(self.world, random.Random(42)) for _ in range(3)]
        self.assertEqual(first, second)
        for tf in first:
            self.assertIn(tf, self.world.waypoints())

    def test_random_goal_without_waypoints(self):
        self.assertIsNone(RandomGoal().resolve(World('empty'), self.rng))

    def test_patrol_cycles(self):
        patrol = PatrolGoal(poi_ids=['kitchen', 'desk'])
        targets = []
        for _ in range(3):
            targets.append(patrol.resolve(self.world, self.rng))
            patrol.advance()
        self.assertEqual(targets, [
            self.world.points_of_interest['kitchen'],
            self.world.points_of_interest['desk'],
            self.world.points_of_interest['kitchen'],
        ])
        self.assertTrue(patrol.recurring)
        self.assertFalse(TransformGoal().recurring)

    def test_patrol_target_held_until_advanced(self):
        patrol = PatrolGoal(poi_ids=['kitchen', 'desk'])
        kitchen = self.world.points_of_interest['kitchen']
        self.assertEqual(patrol.resolve(self.world, self.rng), kitchen)
        GoalQueue().requeue(patrol)
        self.assertEqual(patrol.resolve(self.world, self.rng), kitchen)
        patrol.advance()
        self.assertEqual(patrol.resolve(self.world, self.rng), self.world.points_of_interest['desk'])


class TestGoalQueue(unittest.TestCase):

    def test_priority_then_submission_order(self):
        queue = GoalQueue()
        low = queue.push(TransformGoal(priority=0))
        high = queue.push(PointOfInterestGoal('kitchen', priority=5))
        low_later = queue.push(RandomGoal(priority=0))

        self.assertEqual(len(queue), 3)
        self.assertIs(queue.peek(), high)
        self.assertEqual([queue.pop(), queue.pop(), queue.pop()], [high, low, low_later])
        self.assertIsNone(queue.pop())

    def test_requeue_goes_to_the_back(self):
        queue = GoalQueue()
        first = queue.push(TransformGoal())
        second = queue.push(TransformGoal())
        queue.pop()
        queue.requeue(first)
        self.assertIs(queue.pop(), second)
        self.assertIs(queue.pop(), first)
    def test_duplicate_sequences(self):
        queue = GoalQueue()
        assigned = queue.push(TransformGoal())
        same = queue.push(TransformGoal(Transform.from_xy_theta(1.0, 0.0), sequence=0))
        again = queue.push(RandomGoal(sequence=0))
        self.assertEqual(assigned.sequence, same.sequence)
        self.assertEqual([queue.pop(), queue.pop(), queue.pop()], [assigned, same, again])


    def test_clear(self):
        queue = GoalQueue()
        queue.push(TransformGoal())
        queue.clear()
        self.assertEqual(len(queue), 0)
        self.assertIsNone(queue.peek())


class TestActions(unittest.TestCase):

    def test_factory(self):
        self.assertIsInstance(make_action(None), NoAction)
        self.assertIsInstance(make_action('align_rotation'), AlignRotation)
        self.assertIsInstance(make_action('vacuum_spiral', {'duration': 5.0}), SpiralAction)
        self.assertIsInstance(make_action('WAIT', {'duration': 1.0}), WaitAction)
        self.assertIsInstance(make_action('dance'), InvalidAction)
        self.assertIsInstance(make_action('wait', {'speed': 1.0}), InvalidAction)

    def test_immediate_actions(self):
        self.assertTrue(NoAction().immediate_terminate)
        self.assertTrue(AlignRotation().align_rotation)
        state, cmd = NoAction().update(0.0, False)
        self.assertEqual(state, GoalPointState.COMPLETED)
        self.assertTrue(cmd.is_stopped)

    def test_timed_action_lifecycle(self):
        action = WaitAction(duration=2.0)
        self.assertEqual(action.update(0.0, False)[0], GoalPointState.REJECTED)
        self.assertTrue(action.start(10.0))
        self.assertEqual(action.update(11.0, False)[0], GoalPointState.RUNNING)
        self.assertEqual(action.update(12.5, False)[0], GoalPointState.COMPLETED)

    def test_invalid_duration(self):
        self.assertFalse(WaitAction(duration=0.0).start(0.0))
        self.assertFalse(SpiralAction(speed=0.0).start(0.0))
        self.assertFalse(InvalidAction('dance').start(0.0))

    def test_spiral_radius_grows(self):
        action = SpiralAction(duration=10.0, speed=0.1, max_radius=0.3)
        action.start(0.0)

        _, cmd = action.update(0.0, False)
        self.assertTrue(math.isinf(cmd.angular))

        _, cmd = action.update(5.0, False)
        self.assertAlmostEqual(cmd.linear, 0.1)
        self.assertAlmostEqual(cmd.angular, 0.1 / 0.15)

        _, cmd = action.update(5.0, True)
        self.assertEqual(cmd.linear, 0.0)


if __name__ == '__main__':
    unittest.main()
