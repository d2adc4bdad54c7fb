"""
Run value iteration on the grid world and print utilities and policy
"""
import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from gridmdp.config import SimulationConfig, load_config
from gridmdp.errors import ConfigurationError
from gridmdp.simulation import Simulation
from gridmdp.utils import format_grid, policy_grid


def parse_args():
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(description='Value iteration on a 4x3 grid world')
    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to YAML config file (defaults to the classic 4x3 world)'
    )
    parser.add_argument(
        '--steps',
        type=str,
        default='0,1,2,3,10',
        help='Comma separated iterations at which to print the tables'
    )
    parser.add_argument('--discount', type=float, default=None, help='Override discount factor')
    parser.add_argument('--step_reward', type=float, default=None, help='Override step reward')
    parser.add_argument('--seed', type=int, default=None, help='Override random seed')
    parser.add_argument('--log_file', type=str, default=None, help='Append run log to this file')
    parser.add_argument(
        '--episode',
        action='store_true',
        help='Run one agent episode with the final policy'
    )
    parser.add_argument('--quiet', action='store_true', help='Only print the final tables')
    return parser.parse_args()


def print_tables(snap):
    print(f'k={snap.iteration_count}  U:')
    print(snap.grid.to_value_grid(snap.utilities.values).round(3))
    print('Greedy policy wrt U_k:')
    print(format_grid(policy_grid(snap.grid, snap.policy)))
    print('-' * 40)


def main():
    args = parse_args()

    try:
        if args.config:
            print(f"Loading config from {args.config}")
            config = load_config(args.config)
        else:
            config = SimulationConfig()
        if args.seed is not None:
            config.seed = args.seed
        if args.log_file is not None:
            config.log_file = args.log_file
        if args.quiet:
            config.verbose = False

        sim = Simulation(config)
        if args.discount is not None or args.step_reward is not None:
            sim.configure(step_reward=args.step_reward, discount_factor=args.discount)
    except ConfigurationError as e:
        print(f"Invalid configuration: {e}")
        sys.exit(1)

    checkpoints = sorted({int(k) for k in args.steps.split(',') if k.strip()})
    if not args.quiet:
        for k in checkpoints:
            while sim.snapshot.iteration_count < k and not sim.snapshot.has_converged:
                sim.iterate()
            print_tables(sim.snapshot)

    snap = sim.run(progress=not args.quiet)
    print(f'Converged: {snap.has_converged} after {snap.iteration_count} iterations')
    print_tables(snap)

    if args.episode:
        path = sim.run_episode()
        print('Agent path: ' + ' -> '.join(str(tuple(p)) for p in path))
        print(format_grid(policy_grid(sim.grid, sim.snapshot.policy, sim.snapshot.agent.position)))


if __name__ == '__main__':
    main()
